from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import MIN_CONTENT_LENGTH, DocumentStatus, ManifestEntry, PipelineState, SourceDocument
from .errors import ContentTooShortError, PipelineError, ValidationFailedError
from .generator import invoke
from .io import publish_artifact, record_manifest_entry, remove_stale_artifact, save_debug_prompt
from .markdown_parser import PRESENTATION_MODE, parse_content
from .prompts import build_presentation_prompt
from .registry import read_component_registry
from .validators import ValidationReport, validate_presentation


@dataclass
class DocumentResult:
    """Outcome of one lesson's run through the pipeline."""
    document: SourceDocument
    status: DocumentStatus = DocumentStatus.PARSING
    output_path: Optional[Path] = None
    report: Optional[ValidationReport] = None
    error: Optional[str] = None


@dataclass
class BatchSummary:
    results: List[DocumentResult] = field(default_factory=list)

    def _count(self, status: DocumentStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(DocumentStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(DocumentStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(DocumentStatus.SKIPPED)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stage_parse(state: PipelineState, document: SourceDocument) -> str:
    """Parse the lesson, keeping fenced code for provenance checks."""
    content = parse_content(document.path, PRESENTATION_MODE, preserve_code=True)
    if len(content) < MIN_CONTENT_LENGTH:
        raise ContentTooShortError(document.relative_path, len(content), MIN_CONTENT_LENGTH)
    return content


def stage_prompt(
    state: PipelineState,
    document: SourceDocument,
    content: str,
    output_path: Path,
) -> Tuple[str, List[str]]:
    """Clear any stale artifact and render the prompt with a fresh component whitelist."""
    if remove_stale_artifact(output_path):
        state.log("  🗑️  Deleted existing file for fresh generation")

    # One registry read feeds both the prompt and the registry validator.
    components = read_component_registry(state.config.registry_path)
    prompt = build_presentation_prompt(content, document.name, output_path, components)

    if state.config.debug:
        debug_path = save_debug_prompt(prompt, output_path)
        state.log(f"  🔍 Debug prompt saved: {debug_path}")
    return prompt, components


def stage_generate(state: PipelineState, prompt: str, output_path: Path) -> Dict[str, Any]:
    return invoke(state.generator, prompt, output_path, log=state.log)


def _log_warnings(state: PipelineState, report: ValidationReport) -> None:
    presence = report.result("component_presence")
    if not presence.valid:
        state.log(f"  ⚠️  WARNING: {len(presence.issues)} visual component(s) not rendered:")
        for name in presence.details["missing"]:
            state.log(f"      - {name}")
        state.log(f"  ℹ️  Expected: [{', '.join(presence.details['expected'])}]")
        state.log(f"  ℹ️  Rendered: [{', '.join(str(c) for c in presence.details['rendered'])}]")
    elif presence.details["expected"]:
        state.log(f"  ✅ All {len(presence.details['expected'])} visual component(s) rendered correctly")

    semantics = report.result("comparison_semantics")
    if not semantics.valid:
        state.log(f"  ⚠️  WARNING: {len(semantics.issues)} comparison slide(s) may have reversed order:")
        for issue in semantics.issues:
            state.log(f'      - "{issue.slide}"')
            state.log(f"        {issue.content}")
            state.log(f"        {issue.reason}")
        state.log("  ℹ️  Remember: LEFT = ineffective/worse (RED ✗), RIGHT = effective/better (GREEN ✓)")


def log_report(state: PipelineState, report: ValidationReport) -> None:
    """Print the validation outcome, itemized per rule and slide."""
    _log_warnings(state, report)
    for result in report.results:
        if not result.fatal:
            continue
        if result.valid:
            state.log(f"  ✅ {result.name.replace('_', ' ').capitalize()}: passed")
            continue
        state.log(f"  ❌ BUILD FAILURE: {len(result.issues)} {result.name.replace('_', ' ')} issue(s):")
        for issue in result.issues:
            state.log(f"      - {issue.describe()}")
        state.log(f"  ℹ️  {result.failure_message}")


def stage_validate(
    state: PipelineState,
    artifact: Dict[str, Any],
    content: str,
    components: Sequence[str],
) -> ValidationReport:
    report = validate_presentation(artifact, content, components)
    log_report(state, report)
    return report


def stage_publish(
    state: PipelineState,
    document: SourceDocument,
    artifact: Dict[str, Any],
    report: ValidationReport,
) -> Path:
    """Write both copies and the manifest entry, then report validation failure.

    Publication happens even when validation failed so the artifact can be
    inspected; the error is raised only afterwards.
    """
    config = state.config
    output_path = config.output_path_for(document)
    publish_artifact(artifact, output_path, config.static_path_for(document))

    metadata = artifact.get("metadata") or {}
    entry = ManifestEntry(
        presentation_url=config.public_url_for(document),
        slide_count=len(artifact.get("slides") or []),
        estimated_duration=metadata.get("estimatedDuration"),
        title=metadata.get("title"),
        generated_at=_timestamp(),
    )
    record_manifest_entry(state, document.relative_path, entry)

    state.log(f"  {'⚠️ ' if report.errors else '✅'} Generated: {entry.presentation_url}")
    state.log(f"  📊 Slides: {entry.slide_count}")
    state.log(f"  ⏱️  Duration: {entry.estimated_duration}")

    if report.errors:
        state.log("  ℹ️  The presentation was saved despite validation failures for inspection.")
        raise ValidationFailedError(report.errors, report.issue_lines())
    return output_path


def generate_presentation(
    state: PipelineState,
    document: SourceDocument,
    result: Optional[DocumentResult] = None,
) -> Path:
    """Parse → prompt → generate → validate → publish one lesson."""
    result = result or DocumentResult(document)
    output_path = state.config.output_path_for(document)
    state.log(f"\n📄 Generating presentation: {document.relative_path}")

    result.status = DocumentStatus.PARSING
    content = stage_parse(state, document)

    result.status = DocumentStatus.PROMPTING
    prompt, components = stage_prompt(state, document, content, output_path)

    result.status = DocumentStatus.GENERATING
    artifact = stage_generate(state, prompt, output_path)

    result.status = DocumentStatus.VALIDATING
    result.report = stage_validate(state, artifact, content, components)

    result.status = DocumentStatus.PUBLISHING
    result.output_path = stage_publish(state, document, artifact, result.report)
    return result.output_path


def process_document(state: PipelineState, document: SourceDocument) -> DocumentResult:
    """Run one lesson and convert any failure into a result instead of an exception."""
    result = DocumentResult(document)
    try:
        generate_presentation(state, document, result)
        result.status = DocumentStatus.SUCCEEDED
    except ContentTooShortError as e:
        result.status = DocumentStatus.SKIPPED
        result.error = str(e)
        state.log("  ⚠️  Skipping - content too short")
    except PipelineError as e:
        result.status = DocumentStatus.FAILED
        result.error = str(e)
        if result.output_path is None and isinstance(e, ValidationFailedError):
            result.output_path = state.config.output_path_for(document)
        state.log(f"  ❌ Failed: {e}")
    except Exception as e:
        result.status = DocumentStatus.FAILED
        result.error = f"{type(e).__name__}: {e}"
        state.log(f"  ❌ Unexpected error: {result.error}")
    return result


def run_batch(state: PipelineState, documents: Sequence[SourceDocument]) -> BatchSummary:
    """Process lessons one at a time, in order. A failure never stops the batch."""
    summary = BatchSummary()
    for document in documents:
        summary.results.append(process_document(state, document))
    return summary
