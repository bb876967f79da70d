"""Configuration model for the QA agent."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from qa_agent.models.test_case import TestType

DEFAULT_CONFIG_FILE = "qa-agent.json"
LOCAL_STORAGE_KEY = "aiQaAgentData"


class AgentConfig(BaseModel):
    # AI settings
    ai_model: str = "claude-opus-4-6"
    ai_max_tokens: int = 8192

    # Retry policy for rate-limited calls
    retry_max_retries: int = 2
    retry_initial_delay_seconds: float = 5.0

    # Persistence
    state_path: str = ".qa-agent/state.json"
    storage_key: str = LOCAL_STORAGE_KEY
    debug_dir: str = ".qa-agent/debug"

    # Generation defaults
    default_tests_per_module: int = 10
    max_tests_per_module: int = 50
    default_test_types: list[TestType] = Field(
        default_factory=lambda: [TestType.FUNCTIONAL, TestType.UI_UX, TestType.NEGATIVE]
    )

    @field_validator("retry_max_retries")
    @classmethod
    def non_negative_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry_max_retries must be >= 0")
        return v

    @field_validator("max_tests_per_module")
    @classmethod
    def positive_max_tests(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_tests_per_module must be >= 1")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "AgentConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def load_or_default(cls, path: str | Path) -> "AgentConfig":
        try:
            return cls.load(path)
        except FileNotFoundError:
            return cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
