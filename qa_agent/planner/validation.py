"""Validation and normalization of AI-produced drafts."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from qa_agent.models.app_state import SuggestedModule
from qa_agent.models.test_case import (
    ALL_TEST_TYPES,
    EXECUTION_STATUSES,
    AutoExecutionResult,
    GeneratedTestCase,
    TestStatus,
    TestType,
)

logger = logging.getLogger(__name__)

_TYPE_VALUES = {t.value: t for t in TestType}
_STATUS_VALUES = {s.value: s for s in EXECUTION_STATUSES}


def allowed_test_types(selected: list[TestType] | None) -> list[TestType]:
    """Selected types in selection order without repeats, or every type when none are selected."""
    return list(dict.fromkeys(selected or [])) or list(ALL_TEST_TYPES)


def coerce_test_type(value: Any, allowed: list[TestType]) -> TestType:
    test_type = _TYPE_VALUES.get(value) if isinstance(value, str) else None
    if test_type is not None and test_type in allowed:
        return test_type
    fallback = allowed[0] if allowed else TestType.FUNCTIONAL
    logger.debug("Coercing test type %r to %s", value, fallback.value)
    return fallback


def _normalize_steps(raw: Any) -> list[str]:
    if isinstance(raw, str):
        raw = raw.split(";")
    if not isinstance(raw, list):
        return []
    return [str(s).strip() for s in raw if str(s).strip()]


def normalize_generated_cases(
    payload: Any, selected: list[TestType] | None,
) -> list[GeneratedTestCase]:
    """Turn a parsed generation payload into drafts with valid types.

    A single object is treated as a one-element list. Drafts without a title
    or without steps are skipped.
    """
    items = payload if isinstance(payload, list) else [payload]
    allowed = allowed_test_types(selected)

    drafts = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("Skipping generated test case %d: not an object", i)
            continue
        data = dict(item)
        data["steps"] = _normalize_steps(data.get("steps"))
        if not data["steps"]:
            logger.warning("Skipping generated test case %d: no steps", i)
            continue
        data["type"] = coerce_test_type(data.get("type"), allowed).value
        try:
            drafts.append(GeneratedTestCase.model_validate(data))
        except ValidationError as e:
            logger.warning("Skipping invalid generated test case %d: %s", i, e)
    return drafts


def normalize_suggested_modules(payload: Any) -> list[SuggestedModule] | None:
    """Suggested modules from a discovery payload, or None if the shape is wrong."""
    if isinstance(payload, dict) and isinstance(payload.get("modules"), list):
        payload = payload["modules"]
    if not isinstance(payload, list):
        return None

    modules = []
    for item in payload:
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            logger.warning("Skipping suggested module without a name: %r", item)
            continue
        modules.append(SuggestedModule(
            name=str(item["name"]).strip(),
            description=str(item.get("description") or ""),
        ))
    return modules


def normalize_execution_result(payload: Any) -> AutoExecutionResult | None:
    """Execution prediction with an out-of-range status coerced to Blocked.

    Returns None when the payload lacks a status or an explanation.
    """
    if not isinstance(payload, dict):
        return None
    status = payload.get("status")
    actual = payload.get("actualResults", payload.get("actual_results"))
    if not status or not actual:
        return None

    if not isinstance(status, str) or status not in _STATUS_VALUES:
        logger.warning("AI returned an invalid status '%s'. Defaulting to 'Blocked'.", status)
        return AutoExecutionResult(
            status=TestStatus.BLOCKED,
            actual_results=f"AI returned invalid status '{status}'. Original reason: {actual}",
        )
    return AutoExecutionResult(status=_STATUS_VALUES[status], actual_results=str(actual))
