"""Prompts for AI module discovery."""

DISCOVERY_SYSTEM_PROMPT = """You are a senior QA architect tasked with identifying the primary user-facing modules of a web application for test planning.
Use your existing knowledge about the provided URL (if available) and the application description to create a single, comprehensive and de-duplicated list of modules."""


def build_discovery_prompt(app_url: str, app_description: str) -> str:
    """Build the user message for module discovery."""
    return (
        "## Instructions\n\n"
        "1. Analyze the application's context based on its URL and description.\n"
        "2. Identify core features and user-facing modules. Think about common modules like "
        "'User Login & Registration', 'Product Catalog', 'Shopping Cart', 'Admin Dashboard'.\n"
        "3. De-duplicate any overlapping modules, favoring more descriptive names.\n"
        "4. For each final module, provide a concise name and a one-sentence description of its purpose.\n\n"
        "## Application Context\n\n"
        f"- URL: \"{app_url or 'Not provided'}\"\n"
        f"- Description: \"{app_description or 'Not provided'}\"\n\n"
        "## Output Requirements\n\n"
        "Return a single JSON array of objects, each with a \"name\" and a \"description\" key. "
        "The entire response body must be only the JSON array.\n\n"
        "Example format:\n"
        "[\n"
        '  {"name": "User Login & Registration", "description": "Handles sign-in, sign-up and password recovery."},\n'
        '  {"name": "Product Catalog", "description": "Allows users to browse, search and filter products."}\n'
        "]"
    )
