"""Claude API client wrapper: the single "generate content" transport call."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

import anthropic
from pydantic import BaseModel

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"
FINISH_REASON_SAFETY = "SAFETY"

JSON_ONLY_INSTRUCTION = (
    "Respond with a single well-formed JSON value and nothing else. "
    "No markdown fences, no comments, no text before or after the JSON."
)

# Provider stop reasons mapped to the finish reasons the service understands.
_FINISH_REASONS = {
    "end_turn": "STOP",
    "stop_sequence": "STOP",
    "max_tokens": "MAX_TOKENS",
    "refusal": FINISH_REASON_SAFETY,
}

# Configurable debug directory, set by the orchestrator at startup
_debug_dir: Path | None = None


def set_debug_dir(path: Path) -> None:
    """Set the directory for AI exchange logs."""
    global _debug_dir
    _debug_dir = path
    _debug_dir.mkdir(parents=True, exist_ok=True)


def _get_debug_dir() -> Path:
    """Get or create the debug directory."""
    global _debug_dir
    if _debug_dir is None:
        _debug_dir = Path(".qa-agent") / "debug"
    _debug_dir.mkdir(parents=True, exist_ok=True)
    return _debug_dir


class GenerationConfig(BaseModel):
    response_mime_type: Optional[str] = None  # JSON_MIME_TYPE forces JSON-only output
    seed: Optional[int] = None  # pins sampling when present


class GenerationResult(BaseModel):
    text: str = ""
    finish_reason: Optional[str] = None


class AIClient:
    """Async wrapper around the Anthropic Claude API."""

    def __init__(
        self,
        model: str = "claude-opus-4-6",
        max_tokens: int = 8192,
        default_temperature: float = 0.7,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Please set it before using the AI features."
            )
        # Retries are owned by the rate-limit gateway, not the SDK.
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0, timeout=300.0)
        self.model = model
        self.max_tokens = max_tokens
        self.default_temperature = default_temperature
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    async def generate_content(
        self,
        prompt: str,
        config: Optional[GenerationConfig] = None,
        system_prompt: Optional[str] = None,
    ) -> GenerationResult:
        """Send one prompt and return the raw text plus a finish reason."""
        config = config or GenerationConfig()
        self._call_count += 1

        system_parts = [system_prompt] if system_prompt else []
        if config.response_mime_type == JSON_MIME_TYPE:
            system_parts.append(JSON_ONLY_INSTRUCTION)
        system = "\n\n".join(system_parts)

        # The provider has no sampling seed; a seeded request is made deterministic
        # through temperature instead.
        temperature = 0.0 if config.seed is not None else self.default_temperature

        logger.info(
            "Calling AI (call #%d, model=%s, json=%s, seeded=%s)...",
            self._call_count, self.model,
            config.response_mime_type == JSON_MIME_TYPE, config.seed is not None,
        )
        logger.debug("AI prompt length: system=%d chars, user=%d chars",
                     len(system), len(prompt))

        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            call_start = time.time()
            response = await self.client.messages.create(**kwargs)
            call_duration = time.time() - call_start
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", e)
            self._save_exchange_log(self._call_count, system, prompt, "", error=str(e))
            raise

        text = "".join(
            getattr(block, "text", "") or "" for block in (response.content or [])
        )
        finish_reason = _FINISH_REASONS.get(response.stop_reason, response.stop_reason)
        logger.info("AI response received in %.1fs (%d chars)", call_duration, len(text))

        if response.stop_reason == "max_tokens":
            logger.warning(
                "AI response was truncated! Hit max_tokens limit (%d). "
                "Consider increasing ai_max_tokens in config.",
                self.max_tokens,
            )

        self._save_exchange_log(self._call_count, system, prompt, text, error=None)
        return GenerationResult(text=text, finish_reason=finish_reason)

    @staticmethod
    def _save_exchange_log(
        call_number: int,
        system_prompt: str,
        user_message: str,
        response_text: str,
        error: str | None,
    ) -> None:
        """Save the full AI exchange (prompt + response) to a log file."""
        try:
            debug_dir = _get_debug_dir()
            ts = time.strftime("%Y%m%d_%H%M%S")
            log_file = debug_dir / f"ai_call_{ts}_{call_number:03d}.log"

            with open(log_file, "w", encoding="utf-8") as f:
                f.write(f"=== AI CALL #{call_number} at {time.strftime('%Y-%m-%d %H:%M:%S')} ===\n\n")
                f.write(f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n")
                f.write(system_prompt)
                f.write(f"\n\n=== USER MESSAGE ({len(user_message)} chars) ===\n")
                f.write(user_message)
                f.write(f"\n\n=== RESPONSE ({len(response_text)} chars) ===\n")
                f.write(response_text if response_text else "(empty)")
                if error:
                    f.write(f"\n\n=== ERROR ===\n{error}\n")

            logger.debug("AI exchange logged to %s", log_file)
        except OSError as log_err:
            logger.debug("Failed to save AI exchange log: %s", log_err)
