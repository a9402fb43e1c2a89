from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from openai import OpenAI


FILE_OUTPUT_INSTRUCTIONS = (
    "You cannot write files. Wherever the instructions ask you to write the presentation "
    "JSON to a file, reply with that JSON document instead. Reply with the JSON object only."
)


def clean_json_response(text: str) -> str:
    """Remove markdown code fences and any prose around the JSON object."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\s*", "", text)
        text = re.sub(r"\s*```$", "", text)

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        text = text[first_brace : last_brace + 1]

    return text.strip()


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_text(resp: Any) -> str:
    """Return plain text from a Responses API result across common shapes."""
    if resp is None:
        return ""

    output_text = _field(resp, "output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()

    parts: List[str] = []
    for item in _field(resp, "output") or []:
        for block in _field(item, "content") or []:
            text = _field(block, "text")
            if isinstance(text, str) and text:
                parts.append(text)
        item_text = _field(item, "text")
        if isinstance(item_text, str) and item_text:
            parts.append(item_text)

    return "".join(parts).strip()


def generate_presentation_json(
    client: OpenAI,
    model: str,
    prompt: str,
    max_output_tokens: int,
    reasoning_effort: Optional[str] = "high",
) -> str:
    """Ask the model for the presentation and return the JSON text it replied with.

    The file-writing instructions in the prompt are overridden: the reply body
    is the artifact, and the caller writes it to the agreed path.
    """
    request: Dict[str, Any] = {
        "model": model,
        "instructions": FILE_OUTPUT_INSTRUCTIONS,
        "input": prompt,
        "max_output_tokens": max_output_tokens,
    }
    if reasoning_effort:
        request["reasoning"] = {"effort": reasoning_effort}

    text = extract_text(client.responses.create(**request))
    return clean_json_response(text) if text else ""
