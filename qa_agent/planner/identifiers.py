"""Module abbreviations and per-module sequential, collection-unique test case IDs."""

from __future__ import annotations

import re
from typing import Iterable

from qa_agent.models.test_case import TestCase

DEFAULT_ABBREVIATION = "GEN"
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9 ]")
_TRAILING_NUMBER = re.compile(r"_(\d+)$")


def module_abbreviation(module_name: str) -> str:
    """Short uppercase tag for a module, e.g. "User Login" -> "UL", "Payment" -> "PAYM"."""
    words = _NON_ALNUM.sub("", module_name or "").split()
    if not words:
        return DEFAULT_ABBREVIATION
    if len(words) > 1:
        return "".join(w[0] for w in words).upper()[:4]
    return words[0][:4].upper()


def next_id_for_module(module_name: str, test_cases: Iterable[TestCase]) -> str:
    """Next ``<ABBR>_<NNN>`` ID: one past the highest number already used by the module.

    Modules sharing an abbreviation share the ID space, so a candidate already
    held by any case is stepped past until it is free.
    """
    cases = list(test_cases)
    abbreviation = module_abbreviation(module_name)
    prefix = f"{abbreviation}_"
    max_id = 0
    for tc in cases:
        if tc.module != module_name or not tc.id.startswith(prefix):
            continue
        match = _TRAILING_NUMBER.search(tc.id)
        if match:
            max_id = max(max_id, int(match.group(1)))

    taken = {tc.id for tc in cases}
    number = max_id + 1
    while f"{prefix}{number:03d}" in taken:
        number += 1
    return f"{prefix}{number:03d}"
