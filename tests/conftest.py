"""Shared fixtures: a throwaway project tree, a renderer registry and a stub generator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from presentation_pipeline.config import PipelineConfig, PipelineState


REGISTRY_SOURCE = """\
import React from 'react';
import ContextWindowMeter from '../VisualElements/ContextWindowMeter';
import AgentLoopDiagram from '../VisualElements/AgentLoopDiagram';

const VISUAL_COMPONENTS = {
  ContextWindowMeter: ContextWindowMeter,
  // RetiredChart: RetiredChart,
  AgentLoopDiagram,
};

export default function RevealSlideshow() {
  return null;
}
"""

LESSON_ONE = """\
---
title: Context Windows
sidebar_position: 1
---

# Context Windows

Large language models read a bounded window of tokens. Everything the agent
knows about your task has to fit inside it, so what you load matters.

<ContextWindowMeter />

:::tip[Keep it lean]
Load only the files the task touches.
:::

```python
def count_tokens(text):
    return len(text.split())
```

See the [tokenizer guide](https://example.com/tokens) for details.
"""

LESSON_TWO = """\
# Agent Loops

An agent alternates between reasoning about the task and calling tools. Each
tool result is appended to the context before the next step begins, which is
why long sessions drift.
"""

INTRO = """\
# Course Introduction

This course teaches senior engineers to operate coding agents in production.
We cover context, planning, verification and review across six modules.
"""

ENV_VARS = (
    "PRESENTATION_DOCS_DIR",
    "PRESENTATION_OUTPUT_DIR",
    "PRESENTATION_STATIC_DIR",
    "PRESENTATION_REGISTRY_PATH",
    "PRESENTATION_BACKEND",
    "PRESENTATION_GENERATION_TIMEOUT",
    "CLAUDE_PRESENTATION_MODEL",
    "OPENAI_PRESENTATION_MODEL",
)


class StubGenerator:
    """Stands in for the model: writes a fixed artifact (or raw text) to the agreed path."""

    label = "stub generator"

    def __init__(self, artifact: Optional[Dict[str, Any]] = None, raw: Optional[str] = None) -> None:
        self.artifact = artifact
        self.raw = raw
        self.calls: List[Tuple[str, Path, bool]] = []

    def generate(self, prompt: str, output_path: Path) -> str:
        self.calls.append((prompt, output_path, output_path.exists()))
        if self.raw is not None:
            output_path.write_text(self.raw, encoding="utf-8")
        elif self.artifact is not None:
            output_path.write_text(json.dumps(self.artifact), encoding="utf-8")
        return "Presentation written."


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the developer's shell configuration out of path and model resolution.
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    docs = tmp_path / "website" / "docs"
    (docs / "module-a").mkdir(parents=True)
    (docs / "module-b").mkdir(parents=True)
    (docs / "module-a" / "lesson-one.md").write_text(LESSON_ONE, encoding="utf-8")
    (docs / "module-a" / "lesson-two.mdx").write_text(LESSON_TWO, encoding="utf-8")
    (docs / "module-b" / "intro.md").write_text(INTRO, encoding="utf-8")
    (docs / "module-b" / "notes.txt").write_text("not a lesson", encoding="utf-8")
    (docs / "CLAUDE.md").write_text("# Agent instructions\n" * 20, encoding="utf-8")

    registry = tmp_path / "website" / "src" / "components" / "PresentationMode" / "RevealSlideshow.tsx"
    registry.parent.mkdir(parents=True)
    registry.write_text(REGISTRY_SOURCE, encoding="utf-8")
    return tmp_path


@pytest.fixture
def config(project_root: Path) -> PipelineConfig:
    return PipelineConfig.from_root(project_root)


@pytest.fixture
def state(config: PipelineConfig) -> PipelineState:
    return PipelineState(config=config)


@pytest.fixture
def components() -> List[str]:
    return ["ContextWindowMeter", "AgentLoopDiagram"]


@pytest.fixture
def valid_artifact() -> Dict[str, Any]:
    """A ten-slide deck that passes every validator against LESSON_ONE."""
    return {
        "metadata": {
            "title": "Context Windows",
            "lessonId": "lesson-one",
            "estimatedDuration": "20 minutes",
            "learningObjectives": [
                "Explain context window limits",
                "Compare loading strategies",
                "Apply lean context habits",
                "Recognize context drift early",
            ],
        },
        "slides": [
            {"type": "title", "title": "Context Windows", "subtitle": "What the agent can see"},
            {
                "type": "concept",
                "title": "Why Context Matters",
                "content": ["Tokens are finite", "Everything competes for space", "Old turns fall out", "Quality tracks focus"],
            },
            {
                "type": "concept",
                "title": "What Fills the Window",
                "content": ["System instructions", "Loaded files", "Tool results", "Conversation history"],
            },
            {
                "type": "comparison",
                "title": "Loading Strategies",
                "left": {"label": "Dump every file", "content": ["Slow answers", "Lost details", "Higher cost"]},
                "right": {"label": "Load relevant files", "content": ["Focused answers", "Stable recall", "Lower cost"]},
            },
            {
                "type": "visual",
                "title": "Watching the Budget",
                "component": "ContextWindowMeter",
                "caption": "Context fills quickly when every file is loaded up front",
            },
            {
                "type": "concept",
                "title": "Counting Tokens",
                "content": ["Words approximate tokens", "Code is denser", "Measure before loading"],
            },
            {
                "type": "marketingReality",
                "title": "Huge Context Windows",
                "metaphor": {"label": "Marketing", "content": ["Remembers everything", "Reads whole repos", "Never forgets"]},
                "reality": {"label": "Reality", "content": ["Attention dilutes", "Middle gets skipped", "Recall degrades"]},
            },
            {
                "type": "concept",
                "title": "Keeping It Lean",
                "content": ["Scope each task", "Load touched files", "Summarize long history", "Restart when drifting"],
            },
            {
                "type": "concept",
                "title": "Signals of Drift",
                "content": ["Repeated questions", "Forgotten constraints", "Contradictory edits"],
            },
            {
                "type": "takeaway",
                "title": "Key Takeaways",
                "content": ["Context is a budget", "Load only relevant files", "Measure before adding more"],
            },
        ],
    }


@pytest.fixture
def generator_factory():
    return StubGenerator


@pytest.fixture
def stub_generator(valid_artifact: Dict[str, Any]) -> StubGenerator:
    return StubGenerator(valid_artifact)


@pytest.fixture
def lesson_one(project_root: Path):
    from presentation_pipeline.discovery import discover

    documents = discover(project_root / "website" / "docs")
    return next(doc for doc in documents if doc.relative_path == "module-a/lesson-one.md")
