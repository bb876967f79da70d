"""Dashboard statistics over the current test suite."""

from __future__ import annotations

from collections import Counter

from pydantic import BaseModel, Field

from qa_agent.models.app_state import AppState
from qa_agent.models.test_case import TestStatus


class ModuleStats(BaseModel):
    module: str
    total: int = 0
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    pending: int = 0


class DashboardSummary(BaseModel):
    total_modules: int = 0
    total_test_cases: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    executed: int = 0
    pass_rate: float = 0.0
    modules: list[ModuleStats] = Field(default_factory=list)


def build_dashboard_summary(state: AppState) -> DashboardSummary:
    counts = Counter(tc.status for tc in state.test_cases)
    executed = len(state.test_cases) - counts[TestStatus.PENDING]

    per_module: dict[str, ModuleStats] = {}
    for tc in state.test_cases:
        stats = per_module.setdefault(tc.module, ModuleStats(module=tc.module))
        stats.total += 1
        field = tc.status.value.lower()
        setattr(stats, field, getattr(stats, field) + 1)

    return DashboardSummary(
        total_modules=len(state.discovered_modules),
        total_test_cases=len(state.test_cases),
        status_counts={s.value: counts[s] for s in TestStatus},
        executed=executed,
        pass_rate=counts[TestStatus.PASSED] / executed if executed else 0.0,
        modules=sorted(per_module.values(), key=lambda m: m.module),
    )

