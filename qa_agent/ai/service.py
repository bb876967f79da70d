"""AI request contracts: discovery, analysis, generation and execution prediction.

Each call builds its prompt, goes through the rate-limit retry gateway,
parses the raw output tolerantly and validates it. Every failure reaches the
caller as an ``AIServiceError`` carrying a human-readable message.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from qa_agent.ai.client import (
    FINISH_REASON_SAFETY,
    JSON_MIME_TYPE,
    AIClient,
    GenerationConfig,
    GenerationResult,
)
from qa_agent.ai.errors import AIServiceError, ErrorKind, to_service_error
from qa_agent.ai.parsing import parse_json_from_markdown
from qa_agent.ai.prompts.analysis import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from qa_agent.ai.prompts.discovery import DISCOVERY_SYSTEM_PROMPT, build_discovery_prompt
from qa_agent.ai.prompts.execution import EXECUTION_SYSTEM_PROMPT, build_execution_prompt
from qa_agent.ai.prompts.generation import GENERATION_SYSTEM_PROMPT, build_generation_prompt
from qa_agent.ai.retry import DEFAULT_INITIAL_DELAY, DEFAULT_MAX_RETRIES, with_rate_limit_retry
from qa_agent.models.app_state import SuggestedModule
from qa_agent.models.test_case import AutoExecutionResult, GeneratedTestCase, TestCase, TestType
from qa_agent.planner.validation import (
    normalize_execution_result,
    normalize_generated_cases,
    normalize_suggested_modules,
)

logger = logging.getLogger(__name__)

FIXED_SEED = 42

SAFETY_BLOCK_MESSAGE = "The request was blocked for safety reasons. Please adjust your input."


def _safety_error() -> AIServiceError:
    return AIServiceError(SAFETY_BLOCK_MESSAGE, ErrorKind.SAFETY_BLOCK)


class QAService:
    """Typed AI operations on top of the raw ``generate_content`` transport."""

    def __init__(
        self,
        ai_client: AIClient | None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.ai_client = ai_client
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep

    async def _generate(
        self, prompt: str, config: GenerationConfig, system_prompt: str,
    ) -> GenerationResult:
        if self.ai_client is None:
            raise AIServiceError(
                "API Key not configured for the AI service. Set ANTHROPIC_API_KEY.",
                ErrorKind.MISSING_PRECONDITION,
            )
        client = self.ai_client
        return await with_rate_limit_retry(
            lambda: client.generate_content(prompt, config, system_prompt=system_prompt),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=self._sleep,
        )

    async def discover_modules(
        self, app_url: str, app_description: str, force_refresh: bool = False,
    ) -> list[SuggestedModule]:
        """Ask the AI for the application's functional modules."""
        if not app_url and not app_description:
            raise AIServiceError(
                "Please provide an Application URL and/or Description in the setup first.",
                ErrorKind.MISSING_PRECONDITION,
            )

        config = GenerationConfig(
            response_mime_type=JSON_MIME_TYPE,
            seed=None if force_refresh else FIXED_SEED,
        )
        try:
            result = await self._generate(
                build_discovery_prompt(app_url, app_description), config, DISCOVERY_SYSTEM_PROMPT,
            )
            modules = normalize_suggested_modules(parse_json_from_markdown(result.text))
            if modules is None:
                if result.finish_reason == FINISH_REASON_SAFETY:
                    raise AIServiceError(
                        "The request was blocked for safety reasons. Please adjust the app description.",
                        ErrorKind.SAFETY_BLOCK,
                    )
                raise AIServiceError(
                    "Failed to parse module suggestions from the AI. "
                    "The AI response was not structured as expected.",
                    ErrorKind.MALFORMED_RESPONSE,
                )
        except Exception as e:
            raise to_service_error(e) from e

        logger.info("AI suggested %d modules", len(modules))
        return modules

    async def analyze_module(self, module_name: str, module_description: str) -> str:
        """Free-form QA insights for one module."""
        config = GenerationConfig(seed=FIXED_SEED)
        try:
            result = await self._generate(
                build_analysis_prompt(module_name, module_description), config, ANALYSIS_SYSTEM_PROMPT,
            )
            if result.finish_reason == FINISH_REASON_SAFETY:
                raise _safety_error()
            if not result.text.strip():
                raise AIServiceError(
                    "The AI returned an empty analysis.", ErrorKind.MALFORMED_RESPONSE,
                )
        except Exception as e:
            raise to_service_error(e) from e
        return result.text

    async def generate_test_cases(
        self,
        module_name: str,
        module_description: str,
        existing_test_count: int,
        total_tests: int,
        selected_types: Optional[list[TestType]] = None,
    ) -> list[GeneratedTestCase]:
        """Generate test case drafts for one module, with types validated."""
        config = GenerationConfig(response_mime_type=JSON_MIME_TYPE, seed=FIXED_SEED)
        prompt = build_generation_prompt(
            module_name, module_description, existing_test_count, total_tests, selected_types,
        )
        try:
            result = await self._generate(prompt, config, GENERATION_SYSTEM_PROMPT)

            if not result.text.strip():
                if result.finish_reason == FINISH_REASON_SAFETY:
                    raise _safety_error()
                message = "The AI returned an empty response."
                if result.finish_reason:
                    message += f" Finish reason: {result.finish_reason}."
                raise AIServiceError(message, ErrorKind.MALFORMED_RESPONSE)

            payload = parse_json_from_markdown(result.text)
            if payload is None:
                raise AIServiceError(
                    "Failed to parse test cases from the AI response. "
                    "The AI response format was invalid.",
                    ErrorKind.MALFORMED_RESPONSE,
                )
        except Exception as e:
            raise to_service_error(e) from e

        drafts = normalize_generated_cases(payload, selected_types)
        logger.info("AI generated %d test cases for module '%s'", len(drafts), module_name)
        return drafts

    async def predict_execution(
        self, test_case: TestCase, app_description: str,
    ) -> AutoExecutionResult:
        """Predict Passed/Failed/Blocked for a test case without running it."""
        config = GenerationConfig(response_mime_type=JSON_MIME_TYPE, seed=FIXED_SEED)
        try:
            result = await self._generate(
                build_execution_prompt(test_case, app_description), config, EXECUTION_SYSTEM_PROMPT,
            )
            prediction = normalize_execution_result(parse_json_from_markdown(result.text))
            if prediction is None:
                if result.finish_reason == FINISH_REASON_SAFETY:
                    raise _safety_error()
                raise AIServiceError(
                    "Failed to parse auto-execution result from the AI. "
                    "The AI response was not valid JSON or was missing fields.",
                    ErrorKind.MALFORMED_RESPONSE,
                )
        except Exception as e:
            raise to_service_error(e) from e

        logger.debug("Predicted %s for %s", prediction.status.value, test_case.id)
        return prediction
