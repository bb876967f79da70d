"""State actions and the pure reducer that applies them."""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel

from qa_agent.models.app_state import AppState, DiscoveredModule, DiscoveryCache, SetupInfo
from qa_agent.models.test_case import TestCase


class SetSetupInfo(BaseModel):
    setup_info: SetupInfo


class AddDiscoveredModule(BaseModel):
    module: DiscoveredModule


class AddDiscoveredModules(BaseModel):
    modules: list[DiscoveredModule]


class UpdateModuleInsights(BaseModel):
    module_id: str
    insights: str


class ClearModuleInsights(BaseModel):
    module_id: str


class AddTestCases(BaseModel):
    test_cases: list[TestCase]


class UpdateTestCase(BaseModel):
    test_case: TestCase


class DeleteTestCase(BaseModel):
    test_id: str


class SetTestCases(BaseModel):
    test_cases: list[TestCase]


class CacheSuggestions(BaseModel):
    cache: DiscoveryCache


class ResetState(BaseModel):
    pass


Action = Union[
    SetSetupInfo, AddDiscoveredModule, AddDiscoveredModules, UpdateModuleInsights,
    ClearModuleInsights, AddTestCases, UpdateTestCase, DeleteTestCase, SetTestCases,
    CacheSuggestions, ResetState,
]


def _set_insights(state: AppState, module_id: str, insights: str | None) -> AppState:
    modules = [
        m.model_copy(update={"insights": insights}) if m.id == module_id else m
        for m in state.discovered_modules
    ]
    return state.model_copy(update={"discovered_modules": modules})


def reduce_state(state: AppState, action: Action) -> AppState:
    """Return the state after ``action``. Never mutates ``state``."""
    if isinstance(action, SetSetupInfo):
        return state.model_copy(update={"setup_info": action.setup_info})

    if isinstance(action, (AddDiscoveredModule, AddDiscoveredModules)):
        incoming = [action.module] if isinstance(action, AddDiscoveredModule) else action.modules
        names = {m.name for m in state.discovered_modules}
        new_modules = []
        for module in incoming:
            # Duplicate names are dropped silently.
            if module.name not in names:
                names.add(module.name)
                new_modules.append(module)
        if not new_modules:
            return state
        return state.model_copy(
            update={"discovered_modules": state.discovered_modules + new_modules}
        )

    if isinstance(action, UpdateModuleInsights):
        return _set_insights(state, action.module_id, action.insights)

    if isinstance(action, ClearModuleInsights):
        return _set_insights(state, action.module_id, None)

    if isinstance(action, AddTestCases):
        return state.model_copy(update={"test_cases": state.test_cases + action.test_cases})

    if isinstance(action, UpdateTestCase):
        updated = action.test_case
        cases = [updated if tc.id == updated.id else tc for tc in state.test_cases]
        return state.model_copy(update={"test_cases": cases})

    if isinstance(action, DeleteTestCase):
        cases = [tc for tc in state.test_cases if tc.id != action.test_id]
        return state.model_copy(update={"test_cases": cases})

    if isinstance(action, SetTestCases):
        return state.model_copy(update={"test_cases": list(action.test_cases)})

    if isinstance(action, CacheSuggestions):
        return state.model_copy(update={"cached_suggestions": action.cache})

    if isinstance(action, ResetState):
        return AppState()

    raise TypeError(f"Unknown action: {type(action).__name__}")
