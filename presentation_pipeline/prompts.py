from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional, Sequence

from .config import PROMPTS_DIR
from .io import load_prompt


PRESENTATION_TEMPLATE = PROMPTS_DIR / "presentation.txt"
PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def render_template(template: str, values: Dict[str, str]) -> str:
    """Substitute {{name}} placeholders in one pass so inserted text is never re-expanded."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in values:
            raise KeyError(f"No value for prompt placeholder '{key}'")
        return values[key]

    return PLACEHOLDER_PATTERN.sub(replace, template)


def build_presentation_prompt(
    content: str,
    display_name: str,
    output_path: Path,
    components: Sequence[str],
    template_path: Optional[Path] = None,
) -> str:
    """Render the full generation instructions for one lesson."""
    template = load_prompt(template_path or PRESENTATION_TEMPLATE)
    return render_template(
        template,
        {
            "components": ", ".join(components),
            "component_union": " | ".join(components),
            "title": display_name,
            "content": content,
            "output_path": str(output_path),
        },
    )
