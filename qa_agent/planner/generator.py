"""Sequential batch generation of test cases across modules."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from qa_agent.ai.errors import AIServiceError
from qa_agent.ai.service import QAService
from qa_agent.models.test_case import GeneratedTestCase, TestCase, TestStatus, TestType
from qa_agent.planner.identifiers import next_id_for_module

logger = logging.getLogger(__name__)

DEFAULT_MODULE = "Imported"


class BatchAbortedError(AIServiceError):
    """Raised on the first failing item of a batch; earlier items stay committed."""

    def __init__(self, message: str, cause: AIServiceError, completed: list[TestCase]):
        super().__init__(message, cause.kind)
        self.cause = cause
        self.completed = completed


def assign_ids(
    drafts: list[GeneratedTestCase],
    context: list[TestCase],
    module_name: Optional[str] = None,
) -> list[TestCase]:
    """Create Pending test cases with fresh IDs, appending each to ``context``.

    ``module_name`` overrides the module carried by each draft.
    """
    created = []
    for draft in drafts:
        module = module_name or draft.module or DEFAULT_MODULE
        test_case = TestCase(
            id=next_id_for_module(module, context),
            module=module,
            title=draft.title,
            description=draft.description,
            steps=draft.steps,
            expected_results=draft.expected_results,
            type=TestType(draft.type),
            status=TestStatus.PENDING,
        )
        context.append(test_case)
        created.append(test_case)
    return created


class SuiteGenerator:
    """Generates tests module by module, one AI call outstanding at a time.

    The running list of test cases is threaded through every step so each
    module's ID allocation and existing-test count see the previous modules'
    results. ``on_module_done`` commits each module's cases as soon as they
    exist; a failure stops the batch without undoing earlier commits.
    """

    def __init__(self, service: QAService):
        self.service = service

    async def generate(
        self,
        modules: list[tuple[str, str]],
        existing: list[TestCase],
        tests_per_module: int,
        selected_types: Optional[list[TestType]] = None,
        on_module_done: Optional[Callable[[str, list[TestCase]], None]] = None,
    ) -> list[TestCase]:
        context = list(existing)
        created: list[TestCase] = []

        for i, (module_name, module_description) in enumerate(modules, 1):
            logger.info("Generating tests for module: %s (%d/%d)", module_name, i, len(modules))
            existing_count = sum(1 for tc in context if tc.module == module_name)
            try:
                drafts = await self.service.generate_test_cases(
                    module_name, module_description, existing_count,
                    tests_per_module, selected_types,
                )
            except AIServiceError as e:
                logger.error("Batch generation stopped at module '%s': %s", module_name, e)
                raise BatchAbortedError(f'Failed on "{module_name}": {e.message}', e, created) from e

            new_cases = assign_ids(drafts, context, module_name)
            created.extend(new_cases)
            if on_module_done is not None:
                on_module_done(module_name, new_cases)

        logger.info("Batch generation complete: %d new test cases", len(created))
        return created
