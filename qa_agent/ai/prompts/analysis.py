"""Prompts for AI module analysis (free-form QA insights)."""

ANALYSIS_SYSTEM_PROMPT = """You are an experienced QA engineer. Present insights in a clear, concise and actionable format for a QA engineer. Use markdown for formatting."""


def build_analysis_prompt(module_name: str, module_description: str) -> str:
    """Build the user message for analyzing one module."""
    return (
        "Analyze the following web application module and provide key insights for QA testing.\n\n"
        f"Module Name: \"{module_name}\"\n"
        f"Module Description: \"{module_description}\"\n\n"
        "Identify:\n"
        "1. Core functionalities and user flows.\n"
        "2. Key UI elements and interactions.\n"
        "3. Potential areas for complex logic or integrations.\n"
        "4. Common pitfalls or types of bugs to look for in such a module."
    )
