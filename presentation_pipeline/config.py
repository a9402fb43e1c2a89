from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Final, List, Optional, Set

from .errors import ConfigurationError


class RunMode(Enum):
    """How the working set of lessons is chosen."""
    INTERACTIVE = "interactive"
    BATCH = "batch"
    AUDIT = "audit"


class GeneratorBackend(Enum):
    """Supported generative backends."""
    CLAUDE = "claude"
    OPENAI = "openai"


class SlideType(Enum):
    """Slide variants understood by the website slide viewer."""
    TITLE = "title"
    CONCEPT = "concept"
    CODE = "code"
    CODE_COMPARISON = "codeComparison"
    COMPARISON = "comparison"
    MARKETING_REALITY = "marketingReality"
    VISUAL = "visual"
    CODE_EXECUTION = "codeExecution"
    TAKEAWAY = "takeaway"


class DocumentStatus(Enum):
    """Lifecycle of one lesson through the pipeline."""
    PARSING = "parsing"
    PROMPTING = "prompting"
    GENERATING = "generating"
    VALIDATING = "validating"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# Model Configuration
CLAUDE_MODEL: Final[str] = "opus"
OPENAI_MODEL: Final[str] = "gpt-5.2"
OPENAI_MAX_OUTPUT_TOKENS: Final[int] = 32000

# Limits
MIN_SLIDES: Final[int] = 8
MAX_SLIDES: Final[int] = 15
MIN_CONTENT_ITEMS: Final[int] = 3
MAX_CONTENT_ITEMS: Final[int] = 5
MAX_WORDS: Final[int] = 5
MIN_CONTENT_LENGTH: Final[int] = 100
MIN_CHECKED_CODE_LENGTH: Final[int] = 20
PREVIEW_LENGTH: Final[int] = 200

# Paths
PROMPTS_DIR = Path(__file__).resolve().parent / "templates"
DEFAULT_DOCS_DIR: Final[str] = "website/docs"
DEFAULT_OUTPUT_DIR: Final[str] = "scripts/output/presentations"
DEFAULT_STATIC_DIR: Final[str] = "website/static/presentations"
DEFAULT_REGISTRY_PATH: Final[str] = "website/src/components/PresentationMode/RevealSlideshow.tsx"
MANIFEST_NAME: Final[str] = "manifest.json"
LOG_NAME: Final[str] = "pipeline.log"
PUBLIC_URL_PREFIX: Final[str] = "/presentations"
RESERVED_FILENAME: Final[str] = "CLAUDE.md"
MARKDOWN_SUFFIXES: Final[tuple] = (".md", ".mdx")


def _env_path(root: Path, env_var: str, default: str) -> Path:
    value = os.environ.get(env_var)
    path = Path(value).expanduser() if value else Path(default)
    return path if path.is_absolute() else root / path


def _env_timeout() -> Optional[float]:
    value = os.environ.get("PRESENTATION_GENERATION_TIMEOUT")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(
            f"PRESENTATION_GENERATION_TIMEOUT must be a number of seconds, got {value!r}"
        ) from None


def _env_backend() -> GeneratorBackend:
    value = os.environ.get("PRESENTATION_BACKEND", GeneratorBackend.CLAUDE.value)
    try:
        return GeneratorBackend(value)
    except ValueError:
        choices = ", ".join(backend.value for backend in GeneratorBackend)
        raise ConfigurationError(f"PRESENTATION_BACKEND must be one of {choices}, got {value!r}") from None


@dataclass(frozen=True)
class SourceDocument:
    """A lesson file selected for generation."""
    path: Path
    relative_path: str

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def output_relative_path(self) -> str:
        parent = Path(self.relative_path).parent.as_posix()
        file_name = f"{self.name}.json"
        return file_name if parent == "." else f"{parent}/{file_name}"


@dataclass
class ManifestEntry:
    """Manifest record for one generated presentation."""
    presentation_url: str
    slide_count: int
    estimated_duration: Optional[str]
    title: Optional[str]
    generated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "presentationUrl": self.presentation_url,
            "slideCount": self.slide_count,
            "estimatedDuration": self.estimated_duration,
            "title": self.title,
            "generatedAt": self.generated_at,
        }


@dataclass
class PipelineConfig:
    """Configuration for a pipeline run."""
    root: Path
    docs_dir: Path
    output_dir: Path
    static_output_dir: Path
    registry_path: Path
    backend: GeneratorBackend = GeneratorBackend.CLAUDE
    model: Optional[str] = None
    timeout: Optional[float] = None
    debug: bool = False

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / MANIFEST_NAME

    @property
    def static_manifest_path(self) -> Path:
        return self.static_output_dir / MANIFEST_NAME

    @property
    def resolved_model(self) -> str:
        if self.model:
            return self.model
        if self.backend == GeneratorBackend.OPENAI:
            return os.environ.get("OPENAI_PRESENTATION_MODEL", OPENAI_MODEL)
        return os.environ.get("CLAUDE_PRESENTATION_MODEL", CLAUDE_MODEL)

    def output_path_for(self, document: SourceDocument) -> Path:
        return self.output_dir / document.output_relative_path

    def static_path_for(self, document: SourceDocument) -> Path:
        return self.static_output_dir / document.output_relative_path

    def public_url_for(self, document: SourceDocument) -> str:
        return f"{PUBLIC_URL_PREFIX}/{document.output_relative_path}"

    @classmethod
    def from_root(cls, root: Path, **overrides: Any) -> "PipelineConfig":
        """Build a config from a project root, environment variables and explicit overrides."""
        root = root.resolve()
        values: Dict[str, Any] = {
            "root": root,
            "docs_dir": _env_path(root, "PRESENTATION_DOCS_DIR", DEFAULT_DOCS_DIR),
            "output_dir": _env_path(root, "PRESENTATION_OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
            "static_output_dir": _env_path(root, "PRESENTATION_STATIC_DIR", DEFAULT_STATIC_DIR),
            "registry_path": _env_path(root, "PRESENTATION_REGISTRY_PATH", DEFAULT_REGISTRY_PATH),
            "backend": overrides.get("backend") or _env_backend(),
            "timeout": overrides.get("timeout") or _env_timeout(),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@dataclass
class PipelineState:
    """Holds state during pipeline execution."""
    config: PipelineConfig
    generator: Optional[object] = None
    manifest: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    modified_keys: Set[str] = field(default_factory=set)
    log_messages: List[str] = field(default_factory=list)

    def log(self, message: str, print_it: bool = True) -> None:
        """Log a message and optionally print it."""
        timestamped = f"[{datetime.now().strftime('%H:%M:%S')}] {message}"
        self.log_messages.append(timestamped)
        if print_it:
            print(message)

    def save_log(self) -> Path:
        """Save the log to a file."""
        log_path = self.config.output_dir / LOG_NAME
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text("\n".join(self.log_messages), encoding="utf-8")
        return log_path
