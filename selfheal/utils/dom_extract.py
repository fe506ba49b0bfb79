from __future__ import annotations

import json

from selfheal.config.schema import LocatorKind, LocatorSpec
from selfheal.core.metadata import ElementHandle

TAG_FAMILIES: dict[str, tuple[str, ...]] = {
    "button": ("button", "input[type='submit']", "input[type='button']", "[role='button']"),
    "a": ("a", "[role='link']"),
    "input": ("input", "textarea", "[role='textbox']"),
    "textarea": ("textarea", "input", "[role='textbox']"),
    "select": ("select", "[role='listbox']", "[role='combobox']"),
}

ALL_ELEMENTS = "*"


def candidate_query(spec: LocatorSpec) -> str:
    """CSS query enumerating elements in the locator's tag family, in document order."""

    if not spec.tag:
        return ALL_ELEMENTS
    tag = spec.tag.lower()
    return ", ".join(TAG_FAMILIES.get(tag, (tag,)))


def best_query(element: ElementHandle) -> tuple[str, LocatorKind]:
    """Builds the most stable query that points back at ``element``."""

    element_id = safe_attribute(element, "id")
    if element_id:
        return f"#{css_escape(element_id)}", LocatorKind.CSS
    test_id = safe_attribute(element, "data-testid")
    if test_id:
        return f"[data-testid={css_string(test_id)}]", LocatorKind.CSS
    tag = safe_tag(element)
    name = safe_attribute(element, "name")
    if name:
        return f"{tag}[name={css_string(name)}]", LocatorKind.CSS
    aria_label = safe_attribute(element, "aria-label")
    if aria_label:
        return f"{tag}[aria-label={css_string(aria_label)}]", LocatorKind.CSS
    text = " ".join(safe_text(element).split())
    if text:
        return text_query(tag, text), LocatorKind.XPATH
    return tag, LocatorKind.CSS


def safe_attribute(element: ElementHandle, name: str) -> str | None:
    try:
        return element.get_attribute(name)
    except Exception:  # noqa: BLE001 - a detached element reads as having no attributes.
        return None


def safe_text(element: ElementHandle) -> str:
    try:
        return element.get_text() or ""
    except Exception:  # noqa: BLE001 - a detached element reads as empty.
        return ""


def safe_tag(element: ElementHandle) -> str:
    try:
        return (element.tag_name() or ALL_ELEMENTS).lower()
    except Exception:  # noqa: BLE001 - a detached element falls back to the universal selector.
        return ALL_ELEMENTS


def text_query(tag: str, text: str) -> str:
    return f"//{tag or '*'}[normalize-space()={xpath_literal(text)}]"


def infer_kind(query: str) -> LocatorKind:
    stripped = query.strip()
    if stripped.startswith("/") or stripped.startswith("("):
        return LocatorKind.XPATH
    return LocatorKind.CSS


def css_escape(identifier: str) -> str:
    escaped = []
    for index, char in enumerate(identifier):
        if char.isalnum() or char in "-_":
            if index == 0 and char.isdigit():
                escaped.append(f"\\3{char} ")
            else:
                escaped.append(char)
        else:
            escaped.append(f"\\{char}")
    return "".join(escaped)


def css_string(value: str) -> str:
    return json.dumps(value)


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def markup_excerpt(markup: str, max_chars: int = 12000) -> str:
    return markup[:max_chars]
