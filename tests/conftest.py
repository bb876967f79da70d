"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, Mock

import pytest

from qa_agent.ai.client import GenerationResult
from qa_agent.ai.service import QAService
from qa_agent.models.app_state import AppState, DiscoveredModule, SetupInfo
from qa_agent.models.config import AgentConfig
from qa_agent.models.test_case import TestCase as CaseModel
from qa_agent.models.test_case import TestStatus as Status
from qa_agent.models.test_case import TestType as Kind
from qa_agent.orchestrator import Orchestrator
from qa_agent.store.backends import InMemoryStorage


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def setup_info() -> SetupInfo:
    """Create a filled-in setup."""
    return SetupInfo(
        app_url="https://shop.example.com",
        app_description="An online shop selling shoes",
        login_details="user@example.com / secret",
    )


@pytest.fixture
def login_case() -> CaseModel:
    """Create a pending test case in the login module."""
    return CaseModel(
        id="UL_001",
        module="User Login",
        title="Login with valid credentials",
        description="A registered user can log in",
        steps=["Open the login page", "Enter valid credentials", "Click Login"],
        expected_results="The dashboard is shown",
        type=Kind.FUNCTIONAL,
    )


@pytest.fixture
def sample_cases(login_case: CaseModel) -> list[CaseModel]:
    """A small suite with mixed statuses over two modules."""
    return [
        login_case,
        CaseModel(
            id="UL_002", module="User Login", title="Login with wrong password",
            steps=["Enter a wrong password"], expected_results="An error is shown",
            type=Kind.NEGATIVE, status=Status.FAILED, actual_results="No error shown",
        ),
        CaseModel(
            id="CART_001", module="Cart", title="Add item",
            steps=["Add an item"], expected_results="Cart count is 1",
            status=Status.PASSED, actual_results="Count is 1",
        ),
        CaseModel(
            id="CART_002", module="Cart", title="Checkout while logged out",
            steps=["Log out", "Checkout"], expected_results="Login prompt",
            status=Status.BLOCKED, actual_results="Login is broken",
        ),
    ]


@pytest.fixture
def app_state(setup_info: SetupInfo, sample_cases: list[CaseModel]) -> AppState:
    """State with setup, two modules and the sample suite."""
    return AppState(
        setup_info=setup_info,
        discovered_modules=[
            DiscoveredModule(id="m1", name="User Login", description="Sign in and sign up"),
            DiscoveredModule(id="m2", name="Cart", description="Shopping cart"),
        ],
        test_cases=sample_cases,
    )


# ============================================================================
# AI Fixtures
# ============================================================================


def make_result(text: str, finish_reason: str = "STOP") -> GenerationResult:
    """Build a transport result for mocked AI calls."""
    return GenerationResult(text=text, finish_reason=finish_reason)


@pytest.fixture
def mock_ai_client() -> Mock:
    """A mock AIClient whose ``generate_content`` is an AsyncMock.

    Set ``return_value`` or ``side_effect`` on ``generate_content`` per test.
    """
    client = Mock()
    client.generate_content = AsyncMock(return_value=make_result("[]"))
    return client


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Injectable sleep that records delays instead of waiting."""
    return AsyncMock()


@pytest.fixture
def service(mock_ai_client: Mock, no_sleep: AsyncMock) -> QAService:
    """QAService over the mock client with instant retries."""
    return QAService(mock_ai_client, sleep=no_sleep)


# ============================================================================
# Orchestrator Fixtures
# ============================================================================


@pytest.fixture
def config(tmp_path) -> AgentConfig:
    """Config pointing all file output into the temp directory."""
    return AgentConfig(
        state_path=str(tmp_path / "state.json"),
        debug_dir=str(tmp_path / "debug"),
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def orchestrator(config, storage, mock_ai_client, no_sleep) -> Orchestrator:
    """Orchestrator over in-memory storage and the mock AI client."""
    return Orchestrator(config, backend=storage, ai_client=mock_ai_client, sleep=no_sleep)
