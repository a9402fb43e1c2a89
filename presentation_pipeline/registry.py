from __future__ import annotations

import re
from pathlib import Path
from typing import List

from .errors import RegistryError


REGISTRY_PATTERN = re.compile(r"const\s+VISUAL_COMPONENTS\s*(?::[^=]+)?=\s*\{([^}]*)\}")
LINE_COMMENT_PATTERN = re.compile(r"//[^\n]*")
BLOCK_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/")
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*$")


def parse_component_registry(source: str) -> List[str]:
    """Return the keys of the VISUAL_COMPONENTS object declared in renderer source."""
    match = REGISTRY_PATTERN.search(source)
    if not match:
        raise RegistryError("Could not find VISUAL_COMPONENTS declaration in renderer source")

    body = BLOCK_COMMENT_PATTERN.sub("", match.group(1))
    body = LINE_COMMENT_PATTERN.sub("", body)

    names: List[str] = []
    for entry in body.split(","):
        key = entry.split(":", 1)[0].strip().strip("'\"")
        if key and IDENTIFIER_PATTERN.match(key) and key not in names:
            names.append(key)
    return names


def read_component_registry(path: Path) -> List[str]:
    """Read the registry from disk. Never cached, so it tracks the renderer."""
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RegistryError(f"Cannot read component registry {path}: {e}") from e
    return parse_component_registry(source)
