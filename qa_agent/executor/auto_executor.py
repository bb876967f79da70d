"""Sequential AI-predicted execution of pending test cases."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import BaseModel, Field

from qa_agent.ai.errors import AIServiceError
from qa_agent.ai.service import QAService
from qa_agent.models.test_case import TestCase, TestStatus

logger = logging.getLogger(__name__)


class AutoExecutionSummary(BaseModel):
    executed: list[TestCase] = Field(default_factory=list)
    failed_count: int = 0  # Failed or Blocked predictions


class AutoExecutor:
    """Runs predictions one test case at a time; stops at the first error."""

    def __init__(self, service: QAService):
        self.service = service

    async def execute(
        self,
        test_cases: list[TestCase],
        app_description: str,
        on_result: Optional[Callable[[TestCase], None]] = None,
    ) -> AutoExecutionSummary:
        summary = AutoExecutionSummary()
        pending = [tc for tc in test_cases if tc.status == TestStatus.PENDING]
        logger.info("AI is executing %d tests...", len(pending))

        for tc in pending:
            try:
                result = await self.service.predict_execution(tc, app_description)
            except AIServiceError as e:
                logger.error("Auto-execution stopped at %s: %s", tc.id, e)
                raise
            updated = tc.model_copy(
                update={"status": result.status, "actual_results": result.actual_results}
            )
            if result.status in (TestStatus.FAILED, TestStatus.BLOCKED):
                summary.failed_count += 1
            summary.executed.append(updated)
            if on_result is not None:
                on_result(updated)

        logger.info("Auto-execution complete: %d potential bug(s)", summary.failed_count)
        return summary
