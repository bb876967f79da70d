"""Orchestrator: coordinates setup, discovery, generation, execution and CSV I/O."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Optional

from qa_agent.ai.client import AIClient, set_debug_dir
from qa_agent.ai.errors import AIServiceError, ErrorKind
from qa_agent.ai.service import QAService
from qa_agent.executor.auto_executor import AutoExecutionSummary, AutoExecutor
from qa_agent.models.app_state import (
    AppState,
    DiscoveredModule,
    DiscoveryCache,
    SetupInfo,
    SuggestedModule,
)
from qa_agent.models.config import AgentConfig
from qa_agent.models.test_case import GeneratedTestCase, TestCase, TestStatus, TestType
from qa_agent.planner.generator import SuiteGenerator, assign_ids
from qa_agent.reporter.csv_io import (
    convert_bugs_to_csv,
    convert_test_cases_to_csv,
    parse_test_cases_from_csv,
)
from qa_agent.reporter.summary import DashboardSummary, build_dashboard_summary
from qa_agent.store.actions import (
    AddDiscoveredModule,
    AddDiscoveredModules,
    AddTestCases,
    CacheSuggestions,
    ClearModuleInsights,
    DeleteTestCase,
    ResetState,
    SetSetupInfo,
    UpdateModuleInsights,
    UpdateTestCase,
)
from qa_agent.store.backends import JsonFileStorage, StorageBackend
from qa_agent.store.state_store import StateStore

logger = logging.getLogger(__name__)


def discovery_key(app_url: str, app_description: str) -> str:
    """Canonical cache key for the discovery inputs."""
    return json.dumps({"url": app_url, "desc": app_description}, separators=(",", ":"))


class Orchestrator:
    """Entry point for every user-level operation. Owns the state store."""

    def __init__(
        self,
        config: AgentConfig,
        backend: StorageBackend | None = None,
        ai_client: AIClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        if backend is None:
            backend = JsonFileStorage(Path(config.state_path))

        # AI client is optional; suite management works without it
        if ai_client is None:
            try:
                set_debug_dir(Path(config.debug_dir))
                ai_client = AIClient(model=config.ai_model, max_tokens=config.ai_max_tokens)
            except EnvironmentError as e:
                logger.warning("AI client unavailable: %s. AI features are disabled.", e)
        self.ai_client = ai_client

        self.service = QAService(
            ai_client,
            max_retries=config.retry_max_retries,
            initial_delay=config.retry_initial_delay_seconds,
            sleep=sleep,
        )
        self.store = StateStore(backend, storage_key=config.storage_key)
        self.store.load()

    @property
    def state(self) -> AppState:
        return self.store.get_state()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def update_setup(self, **changes: str) -> SetupInfo:
        setup = self.state.setup_info.model_copy(update=changes)
        self.store.dispatch(SetSetupInfo(setup_info=setup))
        return setup

    def reset(self) -> None:
        self.store.dispatch(ResetState())
        logger.info("Application state reset")

    # ------------------------------------------------------------------
    # Discovery and modules
    # ------------------------------------------------------------------

    async def discover_modules(self, force_refresh: bool = False) -> tuple[list[SuggestedModule], bool]:
        """Suggested modules for the current setup, and whether they came from cache."""
        setup = self.state.setup_info
        if not setup.app_url and not setup.app_description:
            raise AIServiceError(
                "Please provide an Application URL and/or Description in the setup first.",
                ErrorKind.MISSING_PRECONDITION,
            )
        key = discovery_key(setup.app_url, setup.app_description)
        cache = self.state.cached_suggestions
        if not force_refresh and cache is not None and cache.for_inputs == key:
            logger.info("Loaded %d suggested modules from cache", len(cache.modules))
            return cache.modules, True

        modules = await self.service.discover_modules(
            setup.app_url, setup.app_description, force_refresh=force_refresh,
        )
        self.store.dispatch(CacheSuggestions(cache=DiscoveryCache(for_inputs=key, modules=modules)))
        return modules, False

    def add_modules(self, suggested: list[SuggestedModule]) -> list[DiscoveredModule]:
        """Persist suggested modules; names already present are skipped."""
        existing = {m.name for m in self.state.discovered_modules}
        modules = [
            DiscoveredModule(id=uuid.uuid4().hex, name=s.name, description=s.description)
            for s in suggested
        ]
        self.store.dispatch(AddDiscoveredModules(modules=modules))
        return [m for m in modules if m.name not in existing]

    def add_manual_module(self, name: str, description: str = "") -> DiscoveredModule | None:
        name = name.strip()
        if not name:
            raise ValueError("Module name is required")
        if self.state.find_module(name) is not None:
            return None
        module = DiscoveredModule(id=uuid.uuid4().hex, name=name, description=description.strip())
        self.store.dispatch(AddDiscoveredModule(module=module))
        return module

    async def analyze_module(self, name: str, refresh: bool = False) -> str:
        """AI insights for a module, computed once unless ``refresh`` is set."""
        module = self.state.find_module(name)
        if module is None:
            raise ValueError(f"Unknown module: {name}")
        if module.insights and not refresh:
            return module.insights
        if module.insights:
            self.store.dispatch(ClearModuleInsights(module_id=module.id))

        insights = await self.service.analyze_module(module.name, module.description)
        self.store.dispatch(UpdateModuleInsights(module_id=module.id, insights=insights))
        return insights

    def available_modules(self) -> list[str]:
        names = {m.name for m in self.state.discovered_modules}
        names.update(tc.module for tc in self.state.test_cases)
        return sorted(n for n in names if n)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_tests(
        self,
        module_names: list[str],
        test_types: Optional[list[TestType]] = None,
        tests_per_module: Optional[int] = None,
    ) -> list[TestCase]:
        """Generate tests for each module in turn, committing after every module."""
        if not module_names:
            raise ValueError("Please select at least one module to generate tests for.")
        count = self.config.default_tests_per_module if tests_per_module is None else tests_per_module
        if not 1 <= count <= self.config.max_tests_per_module:
            raise ValueError(
                f"Number of tests per module must be between 1 and {self.config.max_tests_per_module}."
            )
        if test_types is None:
            test_types = list(self.config.default_test_types)

        modules = []
        for name in module_names:
            info = self.state.find_module(name)
            description = info.description if info and info.description else self.state.setup_info.app_description
            modules.append((name, description))

        generator = SuiteGenerator(self.service)
        return await generator.generate(
            modules,
            existing=self.state.test_cases,
            tests_per_module=count,
            selected_types=test_types,
            on_module_done=lambda _name, cases: self.store.dispatch(AddTestCases(test_cases=cases)),
        )

    # ------------------------------------------------------------------
    # Test case management and execution
    # ------------------------------------------------------------------

    def filter_test_cases(
        self,
        module: Optional[str] = None,
        test_type: Optional[TestType] = None,
        status: Optional[TestStatus] = None,
    ) -> list[TestCase]:
        """Test cases matching every filter given; None matches anything."""
        return [
            tc for tc in self.state.test_cases
            if (module is None or tc.module == module)
            and (test_type is None or tc.type == test_type)
            and (status is None or tc.status == status)
        ]

    def add_test_case(self, draft: GeneratedTestCase) -> TestCase:
        if not draft.module:
            raise ValueError("A module is required for a new test case")
        [test_case] = assign_ids([draft], list(self.state.test_cases))
        self.store.dispatch(AddTestCases(test_cases=[test_case]))
        return test_case

    def get_test_case(self, test_id: str) -> TestCase:
        test_case = self.state.find_test_case(test_id)
        if test_case is None:
            raise ValueError(f"Unknown test case: {test_id}")
        return test_case

    def update_test_case(self, test_id: str, **changes) -> TestCase:
        current = self.get_test_case(test_id)
        updated = TestCase.model_validate({**current.model_dump(), **changes, "id": current.id})
        self.store.dispatch(UpdateTestCase(test_case=updated))
        return updated

    def delete_test_case(self, test_id: str) -> None:
        self.get_test_case(test_id)
        self.store.dispatch(DeleteTestCase(test_id=test_id))

    def record_result(
        self, test_id: str, status: TestStatus, actual_results: str = "",
    ) -> TestCase:
        """Manual execution: store the observed status and actual results."""
        return self.update_test_case(
            test_id, status=status, actual_results=actual_results or None,
        )

    async def auto_execute(
        self, module: Optional[str] = None, test_type: Optional[TestType] = None,
    ) -> AutoExecutionSummary:
        """AI-predict every pending case matching the filters, one at a time."""
        if not self.state.setup_info.app_description:
            raise AIServiceError(
                "Please provide an application description in the setup for the AI to have context.",
                ErrorKind.MISSING_PRECONDITION,
            )
        candidates = self.filter_test_cases(module, test_type, TestStatus.PENDING)
        if not candidates:
            raise ValueError("No pending test cases to execute with current filters.")

        executor = AutoExecutor(self.service)
        return await executor.execute(
            candidates,
            self.state.setup_info.app_description,
            on_result=lambda tc: self.store.dispatch(UpdateTestCase(test_case=tc)),
        )

    # ------------------------------------------------------------------
    # CSV and reporting
    # ------------------------------------------------------------------

    def import_csv(self, csv_text: str) -> list[TestCase]:
        drafts = parse_test_cases_from_csv(csv_text)
        if not drafts:
            return []
        new_cases = assign_ids(drafts, list(self.state.test_cases))
        self.store.dispatch(AddTestCases(test_cases=new_cases))
        logger.info("%d test cases imported from CSV", len(new_cases))
        return new_cases

    def export_results_csv(
        self,
        module: Optional[str] = None,
        test_type: Optional[TestType] = None,
        status: Optional[TestStatus] = None,
    ) -> str:
        """Full results export of the cases matching the filters."""
        return convert_test_cases_to_csv(self.filter_test_cases(module, test_type, status))

    def export_bugs_csv(
        self,
        module: Optional[str] = None,
        test_type: Optional[TestType] = None,
        status: Optional[TestStatus] = None,
    ) -> str:
        return convert_bugs_to_csv(self.filter_test_cases(module, test_type, status))

    def dashboard(self) -> DashboardSummary:
        return build_dashboard_summary(self.state)
