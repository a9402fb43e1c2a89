from __future__ import annotations

import json
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .config import GeneratorBackend, ManifestEntry, PipelineState
from .errors import ManifestError


def validate_environment(backend: GeneratorBackend) -> Tuple[bool, List[str]]:
    """Check what the selected generator backend needs."""
    missing = []

    if backend == GeneratorBackend.OPENAI:
        if not os.environ.get("OPENAI_API_KEY"):
            missing.append("OPENAI_API_KEY")
    elif shutil.which("claude") is None:
        missing.append("claude (executable on PATH)")

    return len(missing) == 0, missing


def load_prompt(path: Path) -> str:
    """Load a prompt from disk."""
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return path.read_text(encoding="utf-8")


def serialize_artifact(artifact: Dict[str, Any]) -> str:
    """Canonical artifact formatting: 2-space indent, UTF-8 text, no trailing newline."""
    return json.dumps(artifact, indent=2, ensure_ascii=False)


def write_artifact(path: Path, artifact: Dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_artifact(artifact), encoding="utf-8")
    return path


def publish_artifact(artifact: Dict[str, Any], output_path: Path, static_path: Path) -> List[Path]:
    """Write the working copy and the static publish copy with identical bytes."""
    return [write_artifact(output_path, artifact), write_artifact(static_path, artifact)]


def remove_stale_artifact(path: Path) -> bool:
    """Delete a previous artifact so it can't be mistaken for fresh output."""
    if path.exists():
        path.unlink()
        return True
    return False


def debug_prompt_path(output_path: Path) -> Path:
    return output_path.with_suffix(".debug-prompt.txt")


def save_debug_prompt(prompt: str, output_path: Path) -> Path:
    """Save the exact prompt sent to the generator next to its artifact."""
    path = debug_prompt_path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(prompt, encoding="utf-8")
    return path


def load_manifest(path: Path) -> Dict[str, Dict[str, Any]]:
    """Read a manifest; a missing file is an empty manifest."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ManifestError(f"Manifest {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} must contain a JSON object")
    return data


def write_manifest(path: Path, manifest: Dict[str, Dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def record_manifest_entry(state: PipelineState, key: str, entry: ManifestEntry) -> None:
    """Update the working manifest and remember that this run owns the key."""
    state.manifest[key] = entry.to_dict()
    state.modified_keys.add(key)


def merge_manifest(
    on_disk: Dict[str, Dict[str, Any]],
    working: Dict[str, Dict[str, Any]],
    modified_keys: set,
) -> Dict[str, Dict[str, Any]]:
    """Overlay only the keys this run wrote onto the manifest read back from disk."""
    merged = dict(on_disk)
    for key in sorted(modified_keys):
        merged[key] = working[key]
    return merged


def save_merged_manifest(state: PipelineState) -> Dict[str, Dict[str, Any]]:
    """Merge-on-write: re-read the manifest, apply this run's keys, write both copies.

    Entries written by another run since this one started are kept. Two runs
    writing the same key still resolve last-writer-wins.
    """
    config = state.config
    fresh = load_manifest(config.manifest_path)
    merged = merge_manifest(fresh, state.manifest, state.modified_keys)
    write_manifest(config.manifest_path, merged)
    write_manifest(config.static_manifest_path, merged)
    state.manifest = merged
    return merged
