"""
Post-generation validators for presentation artifacts.

Each validator is a pure function over the parsed artifact (and, where it needs
to cross-check, the parsed lesson content). None of them mutate the artifact.
Warnings are best-effort lint; fatal results mark the lesson as failed after
the artifact has been published for inspection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import (
    MAX_CONTENT_ITEMS,
    MAX_WORDS,
    MIN_CHECKED_CODE_LENGTH,
    MIN_CONTENT_ITEMS,
    SlideType,
)


class Severity(Enum):
    WARNING = "warning"
    FATAL = "fatal"


COMPONENT_MARKER_PATTERN = re.compile(r"\[VISUAL_COMPONENT: ([A-Za-z]+)\]")
FENCED_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")
FULL_PROMPT_PATTERN = re.compile(
    r"Write [a-z]+ [a-z]+ function|You are a [a-z]+ engineer|Calculate the [a-z]+ [a-z]+|Review this [a-z]+ code",
    re.IGNORECASE,
)
TABLE_PATTERN = re.compile(
    r"^[^\n]*\|[^\n]*\|[^\n]*\n[ \t]*"
    r"(?:\|[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?"
    r"|:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)+\|?)"
    r"[ \t]*$",
    re.MULTILINE,
)

PROMPT_OPENERS = (
    "Write ", "You are ", "Calculate ", "Review ", "Debug ",
    "Add ", "Create ", "Implement ", "Refactor ",
)
PROMPT_MARKERS = (
    "Write a", "You are", "Calculate", "Review", "Debug",
    "Add ", "Create", "Implement", "Refactor",
)
PROMPT_LANGUAGES = ("text", "markdown")

POSITIVE_KEYWORDS = ("cli", "effective", "better", "modern", "agentic", "sociable", "agent workflow")
NEGATIVE_KEYWORDS = ("chat", "ide", "ineffective", "worse", "traditional", "mocked", "chat interface")

CODE_SLIDE_TYPES = (SlideType.CODE.value, SlideType.CODE_COMPARISON.value)
SIDE_KEYS = {
    SlideType.COMPARISON.value: ("left", "right"),
    SlideType.MARKETING_REALITY.value: ("metaphor", "reality"),
}


@dataclass
class Issue:
    """A single rule violation, located as precisely as the rule allows."""
    reason: str
    slide: Optional[str] = None
    location: Optional[str] = None
    count: Optional[int] = None
    index: Optional[int] = None
    word_count: Optional[int] = None
    excess: Optional[int] = None
    content: Optional[str] = None

    def describe(self) -> str:
        if self.slide is None:
            return self.reason
        where = f'Slide "{self.slide}"'
        if self.location:
            where += f" ({self.location})"
        return f"{where}: {self.reason}"


@dataclass
class ValidationResult:
    name: str
    severity: Severity
    issues: List[Issue] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    failure_message: str = ""

    @property
    def valid(self) -> bool:
        return not self.issues

    @property
    def fatal(self) -> bool:
        return self.severity == Severity.FATAL


@dataclass
class ValidationReport:
    results: List[ValidationResult]

    @property
    def warnings(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.fatal and not r.valid]

    @property
    def failures(self) -> List[ValidationResult]:
        return [r for r in self.results if r.fatal and not r.valid]

    @property
    def errors(self) -> List[str]:
        return [r.failure_message for r in self.failures]

    @property
    def passed(self) -> bool:
        return not self.failures

    def issue_lines(self) -> List[str]:
        return [issue.describe() for result in self.failures for issue in result.issues]

    def result(self, name: str) -> ValidationResult:
        for result in self.results:
            if result.name == name:
                return result
        raise KeyError(name)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_whitespace(text: str) -> str:
    """Collapse all whitespace runs so code can be compared across formatting."""
    return re.sub(r"\s+", " ", text.replace("\r\n", "\n")).strip()


def count_words(text: str) -> int:
    return len(text.split())


def preview(text: str, limit: int = 60) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def extract_code_blocks(content: str) -> List[str]:
    """Return the body of every fenced code block in parsed lesson content."""
    blocks = []
    for match in FENCED_BLOCK_PATTERN.finditer(content):
        body = re.sub(r"\A```[^\n]*\n?", "", match.group(0))
        blocks.append(re.sub(r"\n?```\Z", "", body))
    return blocks


def _slides(artifact: Dict[str, Any]) -> List[Dict[str, Any]]:
    slides = artifact.get("slides")
    if not isinstance(slides, list):
        return []
    return [slide for slide in slides if isinstance(slide, dict)]


def _type(slide: Dict[str, Any]) -> Optional[str]:
    slide_type = slide.get("type")
    return slide_type if isinstance(slide_type, str) else None


def _slides_of(artifact: Dict[str, Any], *types: str) -> List[Dict[str, Any]]:
    return [slide for slide in _slides(artifact) if _type(slide) in types]


def _label(slide: Dict[str, Any]) -> str:
    return str(slide.get("title") or _type(slide) or "untitled")


def _items(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _side(slide: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = slide.get(key)
    return value if isinstance(value, dict) else {}


def _code_blocks_of(slide: Dict[str, Any]) -> Iterable[tuple]:
    """Yield (location, language, code) for each code body a code slide carries."""
    if _type(slide) == SlideType.CODE.value:
        yield "code", slide.get("language"), slide.get("code")
    elif _type(slide) == SlideType.CODE_COMPARISON.value:
        for key in ("leftCode", "rightCode"):
            block = _side(slide, key)
            yield key, block.get("language"), block.get("code")


def is_prompt_example(language: Any, code: str) -> bool:
    """Text/markdown code that reads like an instruction to an AI assistant."""
    return language in PROMPT_LANGUAGES and any(marker in code for marker in PROMPT_MARKERS)


def source_has_prompt_examples(content: str) -> bool:
    return any(
        block.lstrip().lower().startswith(opener.lower())
        for block in extract_code_blocks(content)
        for opener in PROMPT_OPENERS
    )


def _word_issues(items: Sequence[str], slide: Optional[str], noun: str) -> List[Issue]:
    issues = []
    for index, item in enumerate(items, start=1):
        words = count_words(item)
        if words > MAX_WORDS:
            excess = words - MAX_WORDS
            issues.append(Issue(
                reason=f'{noun} {index}: {words} words ({excess} over limit): "{preview(item)}"',
                slide=slide,
                index=index,
                word_count=words,
                excess=excess,
                content=preview(item),
            ))
    return issues


# ---------------------------------------------------------------------------
# Warning validators
# ---------------------------------------------------------------------------

def validate_component_presence(artifact: Dict[str, Any], content: str) -> ValidationResult:
    """Every [VISUAL_COMPONENT: X] marker in the lesson should become a visual slide."""
    expected = COMPONENT_MARKER_PATTERN.findall(content)
    rendered = [slide.get("component") for slide in _slides_of(artifact, SlideType.VISUAL.value)]
    missing = [name for name in dict.fromkeys(expected) if name not in rendered]

    return ValidationResult(
        name="component_presence",
        severity=Severity.WARNING,
        issues=[Issue(reason=f"Visual component {name} is not rendered", location=name) for name in missing],
        details={"expected": expected, "rendered": rendered, "missing": missing},
        failure_message="Visual component markers from the lesson have no visual slide",
    )


def validate_comparison_semantics(artifact: Dict[str, Any]) -> ValidationResult:
    """Heuristic: better options belong on the right, worse on the left."""
    comparisons = _slides_of(artifact, SlideType.COMPARISON.value)
    issues = []

    for slide in comparisons:
        left, right = _side(slide, "left"), _side(slide, "right")
        if not left or not right or slide.get("neutral") is True:
            continue
        left_label = str(left.get("label") or "")
        right_label = str(right.get("label") or "")

        if any(keyword in left_label.lower() for keyword in POSITIVE_KEYWORDS):
            reason = f'"{left_label}" appears positive/better but is on LEFT (will show RED ✗)'
        elif any(keyword in right_label.lower() for keyword in NEGATIVE_KEYWORDS):
            reason = f'"{right_label}" appears negative/worse but is on RIGHT (will show GREEN ✓)'
        else:
            continue
        issues.append(Issue(
            reason=reason,
            slide=_label(slide),
            content=f'LEFT: "{left_label}" | RIGHT: "{right_label}"',
        ))

    return ValidationResult(
        name="comparison_semantics",
        severity=Severity.WARNING,
        issues=issues,
        details={"total_comparisons": len(comparisons)},
        failure_message="Comparison slides may have reversed order",
    )


# ---------------------------------------------------------------------------
# Fatal validators
# ---------------------------------------------------------------------------

def validate_registered_components(artifact: Dict[str, Any], components: Sequence[str]) -> ValidationResult:
    """Visual slides may only name components the renderer registers. Exact match."""
    registered = set(components)
    visual_slides = _slides_of(artifact, SlideType.VISUAL.value)
    issues = []

    for slide in visual_slides:
        component = slide.get("component")
        if not isinstance(component, str) or not component:
            issues.append(Issue(reason="Visual slide has no component", slide=_label(slide)))
        elif component not in registered:
            issues.append(Issue(
                reason=f'Component "{component}" is not registered',
                slide=_label(slide),
                location=component,
            ))

    return ValidationResult(
        name="registered_components",
        severity=Severity.FATAL,
        issues=issues,
        details={"total_visual_slides": len(visual_slides), "valid_components": list(components)},
        failure_message="Visual component validation failed - slides reference non-existent components",
    )


def _length_issue(slide: Dict[str, Any], items: List[Any], location: Optional[str]) -> Optional[Issue]:
    count = len(items)
    if count < MIN_CONTENT_ITEMS:
        reason = f"Only {count} item(s), need at least {MIN_CONTENT_ITEMS}"
    elif count > MAX_CONTENT_ITEMS:
        reason = f"Has {count} item(s), maximum is {MAX_CONTENT_ITEMS}"
    else:
        return None
    return Issue(reason=reason, slide=_label(slide), location=location, count=count)


def validate_content_array_lengths(artifact: Dict[str, Any]) -> ValidationResult:
    """Every content array holds 3-5 items; the title slide is exempt."""
    issues = []
    checked = 0

    for slide in _slides(artifact):
        if _type(slide) == SlideType.TITLE.value:
            continue
        arrays = []
        if isinstance(slide.get("content"), list):
            arrays.append((None, slide["content"]))
        for key in SIDE_KEYS.get(_type(slide), ()):
            side_content = _side(slide, key).get("content")
            if isinstance(side_content, list):
                arrays.append((key, side_content))

        for location, items in arrays:
            checked += 1
            issue = _length_issue(slide, items, location)
            if issue:
                issues.append(issue)

    return ValidationResult(
        name="content_array_lengths",
        severity=Severity.FATAL,
        issues=issues,
        details={"total_arrays_checked": checked},
        failure_message="Content array validation failed - slides have too many or too few items",
    )


def validate_prompt_examples(artifact: Dict[str, Any], content: str) -> ValidationResult:
    """Prompt examples in the lesson must stay code, not become bullets."""
    has_prompts = source_has_prompt_examples(content)
    code_slides = _slides_of(artifact, *CODE_SLIDE_TYPES)
    issues = []

    if has_prompts:
        if not code_slides:
            issues.append(Issue(
                reason="Source contains prompt examples but no code/codeComparison slides were generated"
            ))

        for slide in _slides_of(artifact, SlideType.CONCEPT.value, SlideType.COMPARISON.value):
            bullets = _items(slide.get("content"))
            bullets += _items(_side(slide, "left").get("content"))
            bullets += _items(_side(slide, "right").get("content"))
            if FULL_PROMPT_PATTERN.search(" ".join(bullets)):
                issues.append(Issue(
                    reason="Appears to contain prompt examples as bullet points - "
                    "should use code or codeComparison type",
                    slide=_label(slide),
                ))

    return ValidationResult(
        name="prompt_examples",
        severity=Severity.FATAL,
        issues=issues,
        details={"has_prompt_examples": has_prompts, "code_slide_count": len(code_slides)},
        failure_message="Prompt validation failed - prompt examples were converted "
        "to bullet points instead of code blocks",
    )


def validate_code_provenance(artifact: Dict[str, Any], content: str) -> ValidationResult:
    """Code shown on slides must come from the lesson's fenced blocks."""
    sources = [block for block in map(normalize_whitespace, extract_code_blocks(content)) if block]
    code_slides = _slides_of(artifact, *CODE_SLIDE_TYPES)
    issues = []

    for slide in code_slides:
        for location, language, code in _code_blocks_of(slide):
            if not isinstance(code, str) or not code:
                continue
            if _type(slide) == SlideType.CODE.value:
                if is_prompt_example(language, code):
                    continue
            elif language in PROMPT_LANGUAGES:
                continue

            normalized = normalize_whitespace(code)
            if len(normalized) <= MIN_CHECKED_CODE_LENGTH:
                continue
            if any(normalized in source or source in normalized for source in sources):
                continue
            issues.append(Issue(
                reason=f"Code ({normalized[:50]}...) not found in source",
                slide=_label(slide),
                location=location,
                content=normalized[:50],
            ))

    return ValidationResult(
        name="code_provenance",
        severity=Severity.FATAL,
        issues=issues,
        details={"code_slides_checked": len(code_slides), "source_blocks": len(sources)},
        failure_message="Code source validation failed - slides contain fabricated code not in source",
    )


def validate_no_markdown_tables(artifact: Dict[str, Any]) -> ValidationResult:
    """Pipe/dash tables never belong in a code slide."""
    issues = []
    for slide in _slides_of(artifact, *CODE_SLIDE_TYPES):
        for location, _language, code in _code_blocks_of(slide):
            if isinstance(code, str) and TABLE_PATTERN.search(code):
                issues.append(Issue(
                    reason="Contains raw markdown table syntax",
                    slide=_label(slide),
                    location=location,
                ))

    return ValidationResult(
        name="no_markdown_tables",
        severity=Severity.FATAL,
        issues=issues,
        failure_message="Table validation failed - raw markdown tables found in code slides",
    )


def validate_takeaway_word_count(artifact: Dict[str, Any]) -> ValidationResult:
    takeaway_slides = _slides_of(artifact, SlideType.TAKEAWAY.value)
    issues = []
    total = 0
    for slide in takeaway_slides:
        items = _items(slide.get("content"))
        total += len(items)
        issues.extend(_word_issues(items, _label(slide), "Item"))

    return ValidationResult(
        name="takeaway_word_count",
        severity=Severity.FATAL,
        issues=issues,
        details={"total_takeaways_checked": total},
        failure_message=f"Takeaway validation failed - items exceed {MAX_WORDS}-word limit",
    )


def validate_learning_objectives(artifact: Dict[str, Any]) -> ValidationResult:
    metadata = artifact.get("metadata")
    objectives = _items(metadata.get("learningObjectives")) if isinstance(metadata, dict) else []

    return ValidationResult(
        name="learning_objectives",
        severity=Severity.FATAL,
        issues=_word_issues(objectives, None, "Objective"),
        details={"total_objectives_checked": len(objectives)},
        failure_message=f"Learning objectives validation failed - items exceed {MAX_WORDS}-word limit",
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def validate_presentation(
    artifact: Dict[str, Any],
    content: str,
    components: Sequence[str],
) -> ValidationReport:
    """Run the full battery. Never short-circuits."""
    return ValidationReport([
        validate_component_presence(artifact, content),
        validate_comparison_semantics(artifact),
        validate_registered_components(artifact, components),
        validate_content_array_lengths(artifact),
        validate_prompt_examples(artifact, content),
        validate_code_provenance(artifact, content),
        validate_no_markdown_tables(artifact),
        validate_takeaway_word_count(artifact),
        validate_learning_objectives(artifact),
    ])


def validate_published(
    artifact: Dict[str, Any],
    components: Optional[Sequence[str]] = None,
) -> ValidationReport:
    """Checks that need no lesson source, for auditing artifacts already on disk."""
    results = [validate_comparison_semantics(artifact)]
    if components is not None:
        results.append(validate_registered_components(artifact, components))
    results.extend([
        validate_content_array_lengths(artifact),
        validate_no_markdown_tables(artifact),
        validate_takeaway_word_count(artifact),
        validate_learning_objectives(artifact),
    ])
    return ValidationReport(results)
