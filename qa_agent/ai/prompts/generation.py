"""Prompts for AI test case generation."""

from __future__ import annotations

from qa_agent.models.test_case import ALL_TEST_TYPES, TestType

GENERATION_SYSTEM_PROMPT = """You are a Senior QA Engineer AI, specializing in creating comprehensive and professional test suites based on specific methodologies.
Do not generate overly simple tests (e.g., "Check if page loads")."""

GENERAL_METHODOLOGY = (
    "Generate a diverse set of general test cases, touching on functional, "
    "usability, and negative scenarios."
)

_NEGATIVE_AND_EDGE = (
    "- **Negative & Edge Case Testing:** Create scenarios where the system should handle errors "
    "gracefully (e.g., submitting incomplete forms, using invalid data formats, testing with "
    "zero/null values).\n"
)

METHODOLOGY_BLOCKS: dict[TestType, str] = {
    TestType.FUNCTIONAL: (
        "- **Functional (Black-Box) Testing:** Use Equivalence Partitioning & Boundary Value "
        "Analysis for input fields. Consider State Transition Testing for features with different "
        "states (e.g., logged in/out, draft/published).\n"
    ),
    TestType.UI_UX: (
        "- **UI/UX Testing:** Focus on visual design, layout consistency, and user experience "
        "flow. Check button placement, font size, contrast, alignment, and spacing.\n"
    ),
    TestType.NEGATIVE: _NEGATIVE_AND_EDGE,
    TestType.EDGE_CASE: _NEGATIVE_AND_EDGE,
    TestType.SECURITY: (
        "- **Security Testing:** Based on OWASP Top 10, suggest basic checks for Cross-Site "
        "Scripting (XSS) (e.g., entering \"<script>alert(1)</script>\" into fields) and improper "
        "error handling. Title these clearly (e.g., \"Security Check: ...\").\n"
    ),
    TestType.ACCESSIBILITY: (
        "- **Accessibility Testing:** Create tests for keyboard navigation (logical tab order), "
        "sufficient color contrast, and presence of alt text for images (conceptual).\n"
    ),
    TestType.RESPONSIVENESS: (
        "- **Responsiveness Testing:** Validate that the UI adapts correctly across various "
        "screen sizes. Generate tests for common viewports like Mobile (375px), Tablet (768px), "
        "and Desktop (1440px), including portrait/landscape orientations.\n"
    ),
    TestType.CROSS_BROWSER_COMPATIBILITY: (
        "- **Cross-Browser Compatibility Testing:** Ensure consistent behavior and rendering "
        "across latest versions of Chrome and Firefox.\n"
    ),
}


def ordered_test_types(selected: list[TestType] | None) -> list[TestType]:
    """Selected types de-duplicated and put in enumeration order."""
    chosen = set(selected or [])
    return [t for t in ALL_TEST_TYPES if t in chosen]


def build_methodology_prompt(selected: list[TestType] | None) -> str:
    types = ordered_test_types(selected)
    if not types:
        return GENERAL_METHODOLOGY

    text = "Apply a combination of the following advanced QA methodologies based on the selected types:\n"
    emitted: set[str] = set()
    for test_type in types:
        block = METHODOLOGY_BLOCKS[test_type]
        if block not in emitted:
            emitted.add(block)
            text += block
    return text


def build_generation_prompt(
    module_name: str,
    module_description: str,
    existing_test_count: int,
    total_tests: int,
    selected: list[TestType] | None,
) -> str:
    """Build the user message for generating test cases for one module."""
    allowed = ordered_test_types(selected) or ALL_TEST_TYPES
    types_string = '", "'.join(t.value for t in allowed)

    return (
        f"Based on the provided web application module, generate approximately {total_tests} "
        "diverse and high-quality test cases. Distribute the tests among the selected types.\n\n"
        f"## Methodologies to Apply\n\n{build_methodology_prompt(selected)}\n"
        "## Context\n\n"
        f"- Module Name: \"{module_name}\"\n"
        f"- Module Description: \"{module_description}\"\n"
        f"- Number of existing test cases for this module: {existing_test_count}. "
        "Generate new, distinct test cases.\n\n"
        "## Crucial Rule\n\n"
        "All generated test cases MUST be strictly and directly related to the provided Module Name. "
        "Do not create tests for other, related modules.\n\n"
        "## Output Requirements\n\n"
        "For each generated test case, provide:\n"
        "- title: A concise summary of the test (max 15 words).\n"
        "- description: A slightly more detailed explanation of the test's purpose (max 30 words).\n"
        "- steps: An array of 3-5 strings, each a clear, actionable step for the tester.\n"
        "- expectedResults: What should happen if the test passes (max 25 words).\n"
        f"- type: One of the following strings: \"{types_string}\".\n\n"
        "Output Format Example:\n"
        "[\n"
        "  {\n"
        '    "title": "Add an item to the cart",\n'
        '    "description": "Verify a user can add a product to their shopping cart.",\n'
        '    "steps": ["Navigate to a product detail page.", "Select a valid size.", "Click \'Add to Cart\'."],\n'
        '    "expectedResults": "The item is added and the cart count increases by one.",\n'
        '    "type": "Functional"\n'
        "  }\n"
        "]\n\n"
        "Return the output as a single JSON array of test case objects and nothing else."
    )
