"""Application state: setup info, discovered modules, test cases, discovery cache."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from qa_agent.models.test_case import CamelModel, TestCase


class SetupInfo(CamelModel):
    app_url: str = ""
    app_description: str = ""
    login_details: str = ""
    google_sheet_link: str = ""


class SuggestedModule(CamelModel):
    name: str
    description: str = ""


class DiscoveredModule(CamelModel):
    id: str
    name: str
    description: str = ""
    insights: Optional[str] = None


class DiscoveryCache(CamelModel):
    for_inputs: str
    modules: list[SuggestedModule] = Field(default_factory=list)


class AppState(CamelModel):
    setup_info: SetupInfo = Field(default_factory=SetupInfo)
    discovered_modules: list[DiscoveredModule] = Field(default_factory=list)
    test_cases: list[TestCase] = Field(default_factory=list)
    cached_suggestions: Optional[DiscoveryCache] = None

    def find_module(self, name: str) -> DiscoveredModule | None:
        return next((m for m in self.discovered_modules if m.name == name), None)

    def find_test_case(self, test_id: str) -> TestCase | None:
        return next((tc for tc in self.test_cases if tc.id == test_id), None)
