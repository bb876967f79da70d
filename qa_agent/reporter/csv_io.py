"""CSV import of test case drafts and CSV export of results and bug reports."""

from __future__ import annotations

import csv
import io
import logging
import re

from qa_agent.models.test_case import (
    GeneratedTestCase,
    TestCase,
    TestStatus,
    TestType,
)

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = [
    "title", "description", "steps(semicolonseparated)", "expectedresults", "type", "module",
]
RESULTS_HEADERS = [
    "ID", "Module", "Title", "Description", "Steps (Semicolon Separated)",
    "Expected Results", "Type", "Status", "Actual Results",
]
BUG_HEADERS = [
    "Bug ID", "Severity", "Title", "Module", "Steps to Reproduce",
    "Expected Behavior", "Actual Behavior", "Status",
]
DEFAULT_SEVERITY = "Medium"
DEFAULT_MODULE = "Imported"
DEFAULT_TITLE = "Untitled"

_TYPE_VALUES = {t.value: t for t in TestType}
_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: str) -> str:
    return _WHITESPACE.sub("", header).lower()


def parse_test_cases_from_csv(csv_text: str) -> list[GeneratedTestCase]:
    """Parse CSV text into drafts (no ID, no status).

    Raises ``ValueError`` naming the missing columns when required headers are absent.
    """
    rows = [row for row in csv.reader(io.StringIO(csv_text.strip())) if any(c.strip() for c in row)]
    if len(rows) < 2:
        return []

    headers = [normalize_header(h) for h in rows[0]]
    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise ValueError(
            f"CSV missing required headers: {', '.join(missing)}. Found: {', '.join(headers)}"
        )

    drafts = []
    for row in rows[1:]:
        entry = {h: (row[i].strip() if i < len(row) else "") for i, h in enumerate(headers)}
        steps = [s.strip() for s in entry["steps(semicolonseparated)"].split(";") if s.strip()]
        test_type = _TYPE_VALUES.get(entry["type"], TestType.FUNCTIONAL)
        drafts.append(GeneratedTestCase(
            title=entry["title"] or DEFAULT_TITLE,
            description=entry["description"],
            steps=steps,
            expected_results=entry["expectedresults"],
            type=test_type.value,
            module=entry["module"] or DEFAULT_MODULE,
        ))
    logger.debug("Parsed %d test cases from CSV", len(drafts))
    return drafts


def _write_rows(headers: list[str], rows: list[list[str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue().rstrip("\n")


def convert_test_cases_to_csv(test_cases: list[TestCase]) -> str:
    """Full results export. Empty input gives an empty string."""
    if not test_cases:
        return ""
    rows = [
        [
            tc.id, tc.module, tc.title, tc.description, "; ".join(tc.steps),
            tc.expected_results, tc.type.value, tc.status.value, tc.actual_results or "",
        ]
        for tc in test_cases
    ]
    return _write_rows(RESULTS_HEADERS, rows)


def convert_bugs_to_csv(test_cases: list[TestCase]) -> str:
    """Bug report export of Failed and Blocked cases only."""
    if not test_cases:
        return ""
    bugs = [tc for tc in test_cases if tc.status in (TestStatus.FAILED, TestStatus.BLOCKED)]
    rows = [
        [
            tc.id, DEFAULT_SEVERITY, tc.title, tc.module, "; ".join(tc.steps),
            tc.expected_results, tc.actual_results or "", tc.status.value,
        ]
        for tc in bugs
    ]
    return _write_rows(BUG_HEADERS, rows)
