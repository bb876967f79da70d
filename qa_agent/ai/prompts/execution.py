"""Prompts for AI-predicted test execution."""

from __future__ import annotations

from qa_agent.models.test_case import TestCase

EXECUTION_SYSTEM_PROMPT = """You are an expert AI QA automation engineer. Your task is to predict the outcome of a given test case for a web application without actually running it.

Predict if the test is likely to be 'Passed', 'Failed', or 'Blocked'. Use 'Blocked' if the test cannot be performed due to a prerequisite failure (e.g., if a login test is likely to fail, any test requiring login would be blocked).

Return a single JSON object with two keys:
1. "status": one of "Passed", "Failed", or "Blocked".
2. "actualResults": a concise, one-sentence explanation. For 'Failed' or 'Blocked', clearly state the potential bug or reason.

Example:
{"status": "Failed", "actualResults": "Invalid input is likely to cause an application error instead of a user-friendly message."}"""


def build_execution_prompt(test_case: TestCase, app_description: str) -> str:
    """Build the user message for predicting one test case's outcome."""
    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(test_case.steps, 1))
    return (
        f"## Application Context\n\n\"{app_description}\"\n\n"
        "## Test Case to Analyze\n\n"
        f"- Title: \"{test_case.title}\"\n"
        f"- Description: \"{test_case.description}\"\n"
        f"- Steps to Reproduce:\n{steps}\n"
        f"- Expected Results: \"{test_case.expected_results}\"\n\n"
        "Return your prediction as a single JSON object."
    )
