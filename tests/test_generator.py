"""Tests for the generation invoker and its backends."""

from __future__ import annotations

import json
import subprocess
from types import SimpleNamespace

import httpx
import pytest
from openai import APITimeoutError, OpenAIError

from presentation_pipeline import generator as generator_module
from presentation_pipeline.config import GeneratorBackend
from presentation_pipeline.errors import (
    ArtifactNotFoundError,
    ArtifactParseError,
    ArtifactStructureError,
    GenerationError,
    GenerationProcessError,
    GenerationTimeoutError,
)
from presentation_pipeline.generator import (
    ClaudeCliGenerator,
    OpenAIGenerator,
    build_generator,
    invoke,
    load_artifact,
)
from presentation_pipeline.io import serialize_artifact
from presentation_pipeline.openai_client import FILE_OUTPUT_INSTRUCTIONS, clean_json_response, extract_text


class FakeResponses:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.result


def _fake_client(result=None, error=None):
    return SimpleNamespace(responses=FakeResponses(result, error))


def test_claude_command_restricts_tools() -> None:
    assert ClaudeCliGenerator().command() == [
        "claude", "-p", "--model", "opus", "--allowedTools", "Edit", "Write",
    ]


def test_claude_generator_sends_prompt_on_stdin(monkeypatch, tmp_path) -> None:
    seen = {}

    def fake_run(command, **kwargs):
        seen["command"] = command
        seen.update(kwargs)
        return subprocess.CompletedProcess(command, 0, stdout="done", stderr="")

    monkeypatch.setattr(generator_module.subprocess, "run", fake_run)

    output = ClaudeCliGenerator(model="sonnet", timeout=30).generate("the prompt", tmp_path / "out.json")

    assert output == "done"
    assert seen["input"] == "the prompt"
    assert seen["timeout"] == 30
    assert seen["command"][3] == "sonnet"


def test_claude_generator_nonzero_exit(monkeypatch, tmp_path) -> None:
    def fake_run(command, **kwargs):
        return subprocess.CompletedProcess(command, 2, stdout="", stderr="rate limited\n")

    monkeypatch.setattr(generator_module.subprocess, "run", fake_run)

    with pytest.raises(GenerationProcessError) as excinfo:
        ClaudeCliGenerator().generate("prompt", tmp_path / "out.json")

    assert excinfo.value.returncode == 2
    assert str(excinfo.value) == "Claude CLI exited with code 2: rate limited"


def test_claude_generator_missing_executable(monkeypatch, tmp_path) -> None:
    def fake_run(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(generator_module.subprocess, "run", fake_run)

    with pytest.raises(GenerationProcessError, match="Is 'claude' installed"):
        ClaudeCliGenerator().generate("prompt", tmp_path / "out.json")


def test_claude_generator_timeout(monkeypatch, tmp_path) -> None:
    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(generator_module.subprocess, "run", fake_run)

    with pytest.raises(GenerationTimeoutError) as excinfo:
        ClaudeCliGenerator(timeout=5).generate("prompt", tmp_path / "out.json")

    assert excinfo.value.timeout == 5
    assert isinstance(excinfo.value, GenerationError)


def test_load_artifact_missing_file_includes_response_preview(tmp_path) -> None:
    with pytest.raises(ArtifactNotFoundError) as excinfo:
        load_artifact(tmp_path / "missing.json", response="I could not write the file")

    assert "did not create the output file" in str(excinfo.value)
    assert excinfo.value.output_preview == "I could not write the file"


def test_load_artifact_rejects_invalid_json(tmp_path) -> None:
    path = tmp_path / "deck.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ArtifactParseError) as excinfo:
        load_artifact(path)

    assert excinfo.value.preview == "{not json"


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"metadata": {}},
        {"slides": []},
        {"metadata": "Deck", "slides": []},
        {"metadata": {}, "slides": {}},
    ],
)
def test_load_artifact_rejects_bad_structure(tmp_path, payload) -> None:
    path = tmp_path / "deck.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ArtifactStructureError):
        load_artifact(path)


def test_load_artifact_rewrites_canonically(tmp_path, valid_artifact) -> None:
    path = tmp_path / "deck.json"
    path.write_text(json.dumps(valid_artifact, separators=(",", ":")), encoding="utf-8")
    messages = []

    artifact = load_artifact(path, log=messages.append)

    assert artifact == valid_artifact
    assert path.read_text(encoding="utf-8") == serialize_artifact(valid_artifact)
    assert messages == ["  ✅ Valid presentation JSON (10 slides)"]


def test_load_artifact_warns_about_slide_count(tmp_path) -> None:
    path = tmp_path / "deck.json"
    path.write_text(json.dumps({"metadata": {}, "slides": [{}, {}, {}]}), encoding="utf-8")
    messages = []

    load_artifact(path, log=messages.append)

    assert messages[0] == "  ⚠️  Warning: 3 slides (expected 8-15)"


def test_invoke_rechecks_file_after_clean_exit(tmp_path, generator_factory) -> None:
    # The generator "succeeds" but never writes the artifact.
    silent = generator_factory()

    with pytest.raises(ArtifactNotFoundError):
        invoke(silent, "prompt", tmp_path / "nested" / "deck.json")

    assert (tmp_path / "nested").is_dir()


def test_invoke_returns_parsed_artifact(tmp_path, stub_generator, valid_artifact) -> None:
    artifact = invoke(stub_generator, "prompt", tmp_path / "deck.json")

    assert artifact == valid_artifact
    assert stub_generator.calls[0][0] == "prompt"


def test_openai_generator_writes_cleaned_json(tmp_path, valid_artifact) -> None:
    reply = "Here you go:\n```json\n" + json.dumps(valid_artifact) + "\n```"
    client = _fake_client(SimpleNamespace(output_text=reply))
    output_path = tmp_path / "deck.json"

    text = OpenAIGenerator(client, "gpt-test").generate("the prompt", output_path)

    assert json.loads(text) == valid_artifact
    assert json.loads(output_path.read_text(encoding="utf-8")) == valid_artifact
    kwargs = client.responses.kwargs
    assert kwargs["instructions"] == FILE_OUTPUT_INSTRUCTIONS
    assert kwargs["input"] == "the prompt"
    assert kwargs["model"] == "gpt-test"
    assert kwargs["reasoning"] == {"effort": "high"}


def test_openai_generator_empty_reply_writes_nothing(tmp_path) -> None:
    client = _fake_client(SimpleNamespace(output_text="", output=[]))
    output_path = tmp_path / "deck.json"

    assert OpenAIGenerator(client, "gpt-test").generate("prompt", output_path) == ""
    assert not output_path.exists()


def test_openai_generator_maps_errors(tmp_path) -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")

    timed_out = _fake_client(error=APITimeoutError(request=request))
    with pytest.raises(GenerationTimeoutError):
        OpenAIGenerator(timed_out, "gpt-test", timeout=60).generate("prompt", tmp_path / "deck.json")

    failing = _fake_client(error=OpenAIError("quota exceeded"))
    with pytest.raises(GenerationProcessError, match="quota exceeded"):
        OpenAIGenerator(failing, "gpt-test").generate("prompt", tmp_path / "deck.json")


def test_extract_text_handles_output_blocks() -> None:
    resp = {"output": [{"content": [{"text": '{"a": '}, {"text": "1}"}]}]}
    assert extract_text(resp) == '{"a": 1}'
    assert extract_text(None) == ""


def test_clean_json_response_strips_fences_and_prose() -> None:
    assert clean_json_response('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean_json_response('Sure! {"a": {"b": 2}} Hope this helps.') == '{"a": {"b": 2}}'


def test_build_generator_selects_backend(config, monkeypatch) -> None:
    claude = build_generator(config)
    assert isinstance(claude, ClaudeCliGenerator)
    assert claude.model == "opus"
    assert claude.timeout is None

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    config.backend = GeneratorBackend.OPENAI
    config.model = "gpt-custom"
    openai_generator = build_generator(config)
    assert isinstance(openai_generator, OpenAIGenerator)
    assert openai_generator.model == "gpt-custom"
