"""
Generation invoker.

The generator is an untrusted producer: a zero exit code says nothing about
whether a usable artifact exists. After every run the file at the agreed path
is re-checked, re-parsed and structurally sanity-checked before anything
downstream sees it.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from .config import (
    CLAUDE_MODEL,
    MAX_SLIDES,
    MIN_SLIDES,
    OPENAI_MAX_OUTPUT_TOKENS,
    PREVIEW_LENGTH,
    GeneratorBackend,
    PipelineConfig,
)
from .errors import (
    ArtifactNotFoundError,
    ArtifactParseError,
    ArtifactStructureError,
    GenerationProcessError,
    GenerationTimeoutError,
)
from .io import write_artifact
from .openai_client import generate_presentation_json


LogFn = Callable[[str], None]


class ClaudeCliGenerator:
    """Runs the Claude CLI headless with file-writing tools only.

    The prompt goes in on stdin and names the output path in its text; the CLI
    is expected to write the file itself.
    """

    label = "Claude Code CLI"

    def __init__(
        self,
        model: str = CLAUDE_MODEL,
        timeout: Optional[float] = None,
        executable: str = "claude",
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.executable = executable

    def command(self) -> List[str]:
        return [
            self.executable,
            "-p",
            "--model",
            self.model,
            "--allowedTools",
            "Edit",
            "Write",
        ]

    def generate(self, prompt: str, output_path: Path) -> str:
        try:
            result = subprocess.run(
                self.command(),
                input=prompt,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise GenerationProcessError(
                f"Failed to spawn {self.executable}: {e}. Is '{self.executable}' installed and in PATH?"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise GenerationTimeoutError(self.timeout or 0) from e

        if result.returncode != 0:
            raise GenerationProcessError(
                f"Claude CLI exited with code {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
                output=result.stderr,
            )
        return result.stdout


class OpenAIGenerator:
    """Asks the Responses API for the JSON and writes the artifact file itself."""

    label = "OpenAI Responses API"

    def __init__(
        self,
        client: OpenAI,
        model: str,
        max_output_tokens: int = OPENAI_MAX_OUTPUT_TOKENS,
        timeout: Optional[float] = None,
    ) -> None:
        self.client = client
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout

    def generate(self, prompt: str, output_path: Path) -> str:
        try:
            text = generate_presentation_json(
                client=self.client,
                model=self.model,
                prompt=prompt,
                max_output_tokens=self.max_output_tokens,
            )
        except APITimeoutError as e:
            raise GenerationTimeoutError(self.timeout or 0) from e
        except OpenAIError as e:
            raise GenerationProcessError(f"OpenAI request failed: {e}") from e

        if text:
            output_path.write_text(text, encoding="utf-8")
        return text


def build_generator(config: PipelineConfig):
    """Create the generator selected by the run configuration."""
    if config.backend == GeneratorBackend.OPENAI:
        client = OpenAI(timeout=config.timeout) if config.timeout else OpenAI()
        return OpenAIGenerator(client, config.resolved_model, timeout=config.timeout)
    return ClaudeCliGenerator(model=config.resolved_model, timeout=config.timeout)


def load_artifact(output_path: Path, log: Optional[LogFn] = None, response: str = "") -> Dict[str, Any]:
    """Read, parse and sanity-check the artifact, then rewrite it canonically."""
    if not output_path.exists():
        raise ArtifactNotFoundError(str(output_path), (response or "")[:PREVIEW_LENGTH])

    raw = output_path.read_text(encoding="utf-8")
    try:
        artifact = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArtifactParseError(str(e), raw[:PREVIEW_LENGTH]) from e

    if not isinstance(artifact, dict) or "metadata" not in artifact or "slides" not in artifact:
        raise ArtifactStructureError("Invalid presentation structure - missing metadata or slides")
    if not isinstance(artifact["metadata"], dict):
        raise ArtifactStructureError("Invalid presentation structure - metadata must be an object")
    if not isinstance(artifact["slides"], list):
        raise ArtifactStructureError("Invalid presentation structure - slides must be an array")

    slide_count = len(artifact["slides"])
    if log:
        if slide_count < MIN_SLIDES or slide_count > MAX_SLIDES:
            log(f"  ⚠️  Warning: {slide_count} slides (expected {MIN_SLIDES}-{MAX_SLIDES})")
        log(f"  ✅ Valid presentation JSON ({slide_count} slides)")

    write_artifact(output_path, artifact)
    return artifact


def invoke(generator, prompt: str, output_path: Path, log: Optional[LogFn] = None) -> Dict[str, Any]:
    """Drive the generator to produce the artifact at output_path and return it parsed."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if log:
        log(f"  🤖 Calling {getattr(generator, 'label', 'generator')}...")

    response = generator.generate(prompt, output_path)

    if log and output_path.exists():
        log(f"  ✅ File created: {output_path}")
    return load_artifact(output_path, log=log, response=response or "")
