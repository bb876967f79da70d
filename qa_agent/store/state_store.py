"""Application state store with explicit load/save over a storage backend."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from qa_agent.models.app_state import (
    AppState,
    DiscoveredModule,
    DiscoveryCache,
    SetupInfo,
)
from qa_agent.models.config import LOCAL_STORAGE_KEY
from qa_agent.models.test_case import TestCase, TestStatus
from qa_agent.store.actions import Action, reduce_state
from qa_agent.store.backends import StorageBackend

logger = logging.getLogger(__name__)


def _valid_records(model, records: Any, label: str) -> list:
    if not isinstance(records, list):
        return []
    valid = []
    for record in records:
        try:
            valid.append(model.model_validate(record))
        except ValidationError as e:
            logger.warning("Dropping invalid %s from stored state: %s", label, e)
    return valid


def repair_state(data: dict) -> AppState:
    """Build an ``AppState`` from stored data, defaulting or dropping bad records."""
    records = data.get("testCases")
    if not isinstance(records, list):
        records = []
    test_cases = []
    for record in records:
        if isinstance(record, dict) and not record.get("status"):
            record = {**record, "status": TestStatus.PENDING.value}
        test_cases.append(record)

    setup_info = SetupInfo()
    if isinstance(data.get("setupInfo"), dict):
        try:
            setup_info = SetupInfo.model_validate(data["setupInfo"])
        except ValidationError as e:
            logger.warning("Stored setup info invalid, using defaults: %s", e)

    cache = None
    if data.get("cachedSuggestions") is not None:
        try:
            cache = DiscoveryCache.model_validate(data["cachedSuggestions"])
        except ValidationError as e:
            logger.warning("Dropping invalid discovery cache: %s", e)

    return AppState(
        setup_info=setup_info,
        discovered_modules=_valid_records(DiscoveredModule, data.get("discoveredModules"), "module"),
        test_cases=_valid_records(TestCase, test_cases, "test case"),
        cached_suggestions=cache,
    )


class StateStore:
    """Holds the current ``AppState``; every dispatch returns the new state."""

    def __init__(
        self,
        backend: StorageBackend,
        storage_key: str = LOCAL_STORAGE_KEY,
        autosave: bool = True,
    ):
        self.backend = backend
        self.storage_key = storage_key
        self.autosave = autosave
        self._state = AppState()

    def get_state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        new_state = reduce_state(self._state, action)
        if new_state is not self._state:
            self._state = new_state
            if self.autosave:
                self.save()
        return self._state

    def load(self) -> AppState:
        """Load state from the backend; corrupt data is wiped and defaults used."""
        raw = self.backend.get_item(self.storage_key)
        if not raw:
            self._state = AppState()
            return self._state
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            self._state = repair_state(data)
        except (ValueError, TypeError, ValidationError) as e:
            logger.error("Failed to load stored state: %s. Resetting.", e)
            self.backend.remove_item(self.storage_key)
            self._state = AppState()
        return self._state

    def save(self) -> None:
        try:
            payload = self._state.model_dump_json(by_alias=True)
            self.backend.set_item(self.storage_key, payload)
        except OSError as e:
            logger.error("Failed to save state: %s", e)
