from __future__ import annotations

from typing import List, Optional, Sequence


class PipelineError(Exception):
    """Base class for presentation pipeline failures."""


class ConfigurationError(PipelineError):
    """An environment override holds an unusable value."""


class SelectionError(PipelineError):
    """The working set of lessons could not be determined."""


class ContentTooShortError(PipelineError):
    """Parsed lesson content is too short to present."""

    def __init__(self, relative_path: str, length: int, minimum: int) -> None:
        super().__init__(
            f"Content of {relative_path} is {length} characters (minimum {minimum})"
        )
        self.relative_path = relative_path
        self.length = length
        self.minimum = minimum


class RegistryError(PipelineError):
    """The visual component registry could not be read."""


class ManifestError(PipelineError):
    """The presentation manifest on disk is unreadable."""


class GenerationError(PipelineError):
    """The generator did not produce a usable artifact."""


class GenerationProcessError(GenerationError):
    """The generator process or API call failed."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class GenerationTimeoutError(GenerationError):
    """The generator did not finish within the configured timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Generator did not finish within {timeout:g} seconds")
        self.timeout = timeout


class ArtifactNotFoundError(GenerationError):
    """The generator exited without writing the artifact."""

    def __init__(self, path: str, output_preview: str = "") -> None:
        message = f"Generator did not create the output file: {path}"
        if output_preview:
            message += f"\nGenerator response: {output_preview}"
        super().__init__(message)
        self.path = path
        self.output_preview = output_preview


class ArtifactParseError(GenerationError):
    """The artifact is not valid JSON."""

    def __init__(self, reason: str, preview: str) -> None:
        super().__init__(f"Failed to parse JSON: {reason}\nContent preview: {preview}")
        self.reason = reason
        self.preview = preview


class ArtifactStructureError(GenerationError):
    """The artifact lacks the top-level presentation fields."""


class ValidationFailedError(PipelineError):
    """One or more fatal validators rejected a published artifact."""

    def __init__(self, errors: Sequence[str], issues: Optional[Sequence[str]] = None) -> None:
        self.errors: List[str] = list(errors)
        self.issues: List[str] = list(issues or [])
        lines = [f"Validation failed with {len(self.errors)} error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        if self.issues:
            lines.append("  Issues:")
            lines.extend(f"    • {issue}" for issue in self.issues)
        super().__init__("\n".join(lines))
