"""System prompt library.

Loads Markdown prompt templates from the prompts/ directory and renders
them with Jinja2 variable substitution. The orchestrator resolves a
caller's system prompt id to one of these templates.
"""

from __future__ import annotations

import logging
from pathlib import Path

from jinja2 import BaseLoader, Environment

logger = logging.getLogger(__name__)

# Directory containing the .md prompt template files
_PROMPTS_DIR = Path(__file__).parent

DEFAULT_PROMPT_ID = "default"
DISCUSS_PROMPT_ID = "discuss"


def available_prompts() -> list[str]:
    """Ids of every prompt template shipped with the package."""
    return sorted(path.stem for path in _PROMPTS_DIR.glob("*.md"))


def render_prompt(template_name: str, **variables: object) -> str:
    """Load a prompt template and render it with Jinja2 variables.

    Args:
        template_name: Name of the template file (without .md extension).
        **variables: Template variables to inject.

    Returns:
        The fully rendered prompt string.

    Raises:
        FileNotFoundError: If the template file does not exist.
    """
    path = _PROMPTS_DIR / f"{template_name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")

    template_text = path.read_text(encoding="utf-8")

    # Undefined variables render as empty strings so {% if %} guards work
    env = Environment(loader=BaseLoader(), keep_trailing_newline=True)
    template = env.from_string(template_text)
    return template.render(**variables)


def system_prompt(prompt_id: str | None = None, **variables: object) -> str:
    """Render the system prompt for ``prompt_id``, falling back to the default."""
    name = prompt_id or DEFAULT_PROMPT_ID
    if name not in available_prompts():
        logger.warning("Unknown system prompt '%s', using '%s'", name, DEFAULT_PROMPT_ID)
        name = DEFAULT_PROMPT_ID
    return render_prompt(name, **variables)
