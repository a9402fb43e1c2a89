"""
Lesson markdown parsing shared by the presentation generator and the audit.

Turns an MD/MDX lesson into plain text the model can read: front matter is
dropped, self-closing React components become ``[VISUAL_COMPONENT: Name]``
markers, remaining markup is stripped, and fenced code blocks are either kept
verbatim (presentation mode) or replaced by a short description (podcast mode).
"""

from __future__ import annotations

import re
import warnings
from pathlib import Path
from typing import List, Optional, Union

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning


PRESENTATION_MODE = "presentation"
PODCAST_MODE = "podcast"

FRONTMATTER_PATTERN = re.compile(r"\A---[\s\S]*?---\n")
COMPONENT_TAG_PATTERN = re.compile(r"<([A-Z][a-zA-Z]*)\s*/>")
FENCE_PATTERN = re.compile(r"```[\s\S]*?```")
HTML_COMMENT_PATTERN = re.compile(r"<!--[\s\S]*?-->")
IMAGE_PATTERN = re.compile(r"!\[.*?\]\(.*?\)")
LINK_PATTERN = re.compile(r"\[([^\]]+)\]\([^)]+\)")
ADMONITION_PATTERN = re.compile(
    r":::(tip|warning|info|note|caution)\s*(?:\[([^\]]*)\])?\s*", re.IGNORECASE
)
ADMONITION_END_PATTERN = re.compile(r"^:::$", re.MULTILINE)
INLINE_CODE_PATTERN = re.compile(r"`([^`]+)`")
FUNCTION_PATTERN = re.compile(
    r"(?:^|\n)\s*(?:export\s+)?(?:async\s+)?"
    r"(?:function\s+(\w+)"
    r"|(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s*)?\([^)]*\)\s*=>"
    r"|(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s*)?function"
    r"|def\s+(\w+))"
)

CONTEXT_WINDOW = 200
IMMEDIATE_CONTEXT = 100
INEFFECTIVE_MARKERS = ("**ineffective:**", "**risky:**", "**bad:**", "**wrong:**")
EFFECTIVE_MARKERS = ("**effective:**", "**better:**", "**good:**", "**correct:**")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def extract_code_summary(code: str, language: str) -> str:
    """Summarize what a code block shows in a few words."""
    lines = [line for line in code.split("\n") if line.strip()]

    function_match = FUNCTION_PATTERN.search(code)
    if function_match:
        name = next((group for group in function_match.groups() if group), None)
        if name and len(name) >= 3 and name[0].isalpha():
            params_match = re.search(r"\(([^)]*)\)", code)
            params = params_match.group(1).strip() if params_match else ""
            param_count = len(params.split(",")) if params else 0
            summary = f"Function '{name}'"
            if param_count:
                summary += f" with {_plural(param_count, 'parameter')}"
            if "return" in code:
                summary += " that returns a value"
            return summary

    type_match = re.search(r"(?:interface|type)\s+(\w+)", code)
    if type_match:
        return f"Type definition '{type_match.group(1)}'"

    class_match = re.search(r"class\s+(\w+)", code)
    if class_match:
        return f"Class '{class_match.group(1)}'"

    if "import" in code or "require" in code:
        return "Import statements for dependencies"

    if code.strip().startswith("{") or "config" in code or "options" in code:
        return "Configuration object with properties"

    if language in ("bash", "sh", "shell") or any(token in code for token in ("$", "npm", "git")):
        commands = len([line for line in lines if not line.startswith("#")])
        return f"Shell command{'s' if commands != 1 else ''} ({_plural(commands, 'line')})"

    return f"{language or 'Code'} snippet ({_plural(len(lines), 'line')})"


def describe_code_block(code_block: str, preceding: str, following: str) -> str:
    """Replace a fenced block with a tag describing its role in the lesson."""
    match = re.match(r"```(\w+)?[^\n]*\n([\s\S]*?)```", code_block)
    language = (match.group(1) or "") if match else ""
    code = match.group(2).strip() if match else ""
    if not code:
        return "[Code example]"

    full_context = f"{preceding} {following}".lower()
    immediate = f"{preceding[-IMMEDIATE_CONTEXT:]} {following[:IMMEDIATE_CONTEXT]}".lower()
    summary = extract_code_summary(code, language)

    if any(marker in immediate for marker in INEFFECTIVE_MARKERS):
        return f"[INEFFECTIVE CODE EXAMPLE: {summary}]"
    if any(marker in immediate for marker in EFFECTIVE_MARKERS):
        return f"[EFFECTIVE CODE EXAMPLE: {summary}]"
    if "❌" in full_context and "✅" not in immediate:
        return f"[INEFFECTIVE CODE EXAMPLE: {summary}]"
    if "✅" in full_context and "❌" not in immediate:
        return f"[EFFECTIVE CODE EXAMPLE: {summary}]"
    if (
        "pattern" in full_context
        or "structure" in full_context
        or "template" in full_context
        or "example" in immediate
    ):
        return f"[CODE PATTERN: {summary}]"
    return f"[CODE EXAMPLE: {summary}]"


def strip_markup(text: str) -> str:
    """Remove HTML/JSX tags from prose while keeping their text."""
    text = HTML_COMMENT_PATTERN.sub("", text)
    if "<" not in text:
        return text
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    return soup.get_text()


def _clean_prose(text: str) -> str:
    text = strip_markup(text)
    text = IMAGE_PATTERN.sub("[Image]", text)
    text = LINK_PATTERN.sub(r"\1", text)

    def admonition(match: re.Match) -> str:
        return f"\n[PEDAGOGICAL {match.group(1).upper()}: {match.group(2) or 'Note'}]\n"

    text = ADMONITION_PATTERN.sub(admonition, text)
    return ADMONITION_END_PATTERN.sub("\n[END NOTE]\n", text)


def _describe_code_blocks(text: str) -> str:
    pieces: List[str] = []
    last = 0
    for match in FENCE_PATTERN.finditer(text):
        preceding = text[max(0, match.start() - CONTEXT_WINDOW):match.start()]
        following = text[match.end():match.end() + CONTEXT_WINDOW]
        pieces.append(text[last:match.start()])
        pieces.append(describe_code_block(match.group(0), preceding, following))
        last = match.end()
    pieces.append(text[last:])
    return INLINE_CODE_PATTERN.sub(r"\1", "".join(pieces))


def clean_markdown(text: str, preserve_code: bool = True) -> str:
    """Convert raw lesson markdown into model-ready text."""
    cleaned = FRONTMATTER_PATTERN.sub("", text, count=1)
    cleaned = COMPONENT_TAG_PATTERN.sub(r"[VISUAL_COMPONENT: \1]", cleaned)

    # Fenced blocks pass through untouched so slide code can be checked against them.
    pieces: List[str] = []
    last = 0
    for match in FENCE_PATTERN.finditer(cleaned):
        pieces.append(_clean_prose(cleaned[last:match.start()]))
        pieces.append(match.group(0))
        last = match.end()
    pieces.append(_clean_prose(cleaned[last:]))
    cleaned = "".join(pieces)

    if not preserve_code:
        cleaned = _describe_code_blocks(cleaned)

    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()


def parse_content(
    path: Union[str, Path],
    mode: str = PRESENTATION_MODE,
    preserve_code: Optional[bool] = None,
) -> str:
    """Read a lesson file and return its parsed content."""
    if mode not in (PRESENTATION_MODE, PODCAST_MODE):
        raise ValueError(f"Unknown parse mode: {mode}")
    if preserve_code is None:
        preserve_code = mode == PRESENTATION_MODE
    text = Path(path).read_text(encoding="utf-8")
    return clean_markdown(text, preserve_code=preserve_code)
