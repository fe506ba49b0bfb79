from __future__ import annotations

import json

from selfheal.utils.dom_extract import markup_excerpt

SYSTEM_PROMPT = """You locate web elements for a test harness. Return exactly one JSON object and nothing else.
Schema: {"query": "<css or xpath>", "kind": "css" | "xpath", "confidence": <number between 0 and 1>}
Rules:
1. Use only elements present in the provided markup.
2. Do not invent tags, attributes, text, or hierarchy.
3. Prefer a CSS selector when it uniquely identifies the described element.
4. If a CSS selector cannot safely identify the element, return a valid XPath.
5. Lower the confidence when several elements could match the description.
6. Output must be a single line with no explanation, no markdown, and no code fence."""


def build_user_prompt(description: str, markup: str) -> str:
    """Formats a deterministic user payload for the model."""

    return json.dumps(
        {"description": description, "markup": markup_excerpt(markup)},
        indent=2,
        sort_keys=True,
    )
