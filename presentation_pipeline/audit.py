from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .config import MANIFEST_NAME, PipelineState
from .errors import RegistryError
from .registry import read_component_registry
from .validators import ValidationReport, validate_published


@dataclass
class AuditSummary:
    reports: Dict[str, ValidationReport] = field(default_factory=dict)
    unreadable: Dict[str, str] = field(default_factory=dict)

    @property
    def failing(self) -> List[str]:
        return [name for name, report in self.reports.items() if not report.passed]

    @property
    def total_violations(self) -> int:
        return sum(len(report.issue_lines()) for report in self.reports.values())

    @property
    def ok(self) -> bool:
        return not self.failing and not self.unreadable


def find_published_artifacts(directory: Path, prefix: Optional[str] = None) -> List[Path]:
    """Published presentation files, sorted, optionally limited to a relative prefix."""
    if not directory.is_dir():
        return []
    paths = []
    for path in directory.rglob("*.json"):
        if path.name == MANIFEST_NAME:
            continue
        if prefix and not path.relative_to(directory).as_posix().startswith(prefix):
            continue
        paths.append(path)
    return sorted(paths, key=lambda p: p.relative_to(directory).as_posix())


def audit_presentations(state: PipelineState, prefix: Optional[str] = None) -> AuditSummary:
    """Re-check published presentations against the rules that need no lesson source."""
    directory = state.config.static_output_dir
    summary = AuditSummary()

    try:
        components: Optional[List[str]] = read_component_registry(state.config.registry_path)
    except RegistryError as e:
        state.log(f"⚠️  {e}; skipping component registry check")
        components = None

    state.log(f"📊 Auditing presentations in {directory}\n")
    for path in find_published_artifacts(directory, prefix):
        name = path.relative_to(directory).as_posix()
        try:
            artifact = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            summary.unreadable[name] = str(e)
            state.log(f"⚠️  {name}: Error reading file - {e}\n")
            continue
        if not isinstance(artifact, dict):
            summary.unreadable[name] = "not a JSON object"
            state.log(f"⚠️  {name}: not a JSON object\n")
            continue

        report = validate_published(artifact, components)
        summary.reports[name] = report
        if report.passed:
            continue

        metadata = artifact.get("metadata")
        title = metadata.get("title", "Unknown") if isinstance(metadata, dict) else "Unknown"
        state.log(f"❌ {name}")
        state.log(f"   Title: {title}")
        for line in report.issue_lines():
            state.log(f"   - {line}")
        state.log("")

    state.log("═" * 59)
    if summary.ok:
        state.log(f"✅ All {len(summary.reports)} presentations pass validation!")
    else:
        state.log("\n📋 SUMMARY:\n")
        state.log(f"Total files audited: {len(summary.reports) + len(summary.unreadable)}")
        state.log(f"Files with violations: {len(summary.failing)}")
        state.log(f"Total violations: {summary.total_violations}\n")
        if summary.failing:
            state.log("Files needing regeneration:")
            for name in summary.failing:
                state.log(f"  - {name} ({len(summary.reports[name].issue_lines())} violation(s))")
    state.log("═" * 59)
    return summary
