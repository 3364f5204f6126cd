"""Template rendering utilities for scaffold files."""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

TEMPLATES_DIR = Path(__file__).parent / "templates"
STUBS_DIR = Path(__file__).parent / "stubs"


def _get_environment() -> Environment:
    """Get Jinja2 environment configured for scaffold templates.

    Autoescape stays off: document bodies are inserted verbatim.
    """
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        keep_trailing_newline=True,
        trim_blocks=False,
        lstrip_blocks=False,
    )


def render_template(template_name: str, **context: Any) -> str:
    """Render a scaffold template.

    Args:
        template_name: Template filename (e.g., "shell.html.j2")
        **context: Template variables

    Returns:
        Rendered template content
    """
    env = _get_environment()
    template = env.get_template(template_name)
    return template.render(**context)  # type: ignore[no-any-return]
