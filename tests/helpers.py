from __future__ import annotations

import re
import time
from dataclasses import dataclass, field

from selfheal.config.schema import LocatorKind
from selfheal.core.exceptions import InvalidQuerySyntax
from selfheal.core.metadata import BoundingBox

SIMPLE_CSS = re.compile(r"^(?P<tag>[a-z0-9]*)(?:\[(?P<attr>[\w-]+)=[\"'](?P<value>[^\"']*)[\"']\])?$")


@dataclass(eq=False)
class FakeElement:
    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    depth: int = 1
    box: BoundingBox = field(default_factory=lambda: BoundingBox(0.0, 0.0, 10.0, 10.0))

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def get_text(self) -> str:
        return self.text

    def bounding_box(self) -> BoundingBox:
        return self.box

    def tag_name(self) -> str:
        return self.tag

    def dom_depth(self) -> int:
        return self.depth


class FakePage:
    """In-memory page understanding ids, tags and single attribute selectors."""

    def __init__(
        self,
        elements: list[FakeElement],
        markup: str = "<html></html>",
        xpath_results: dict[str, list[FakeElement]] | None = None,
        invalid: set[str] | None = None,
    ) -> None:
        self.elements = elements
        self.markup = markup
        self.xpath_results = xpath_results or {}
        self.invalid = invalid or set()
        self.queries: list[tuple[str, LocatorKind]] = []

    def query_all(self, query: str, kind: LocatorKind = LocatorKind.CSS) -> list[FakeElement]:
        self.queries.append((query, kind))
        if query in self.invalid:
            raise InvalidQuerySyntax(f"Invalid {kind.value} query: {query}")
        if kind is LocatorKind.XPATH:
            return list(self.xpath_results.get(query, []))
        if kind is LocatorKind.ID:
            return [element for element in self.elements if element.attributes.get("id") == query]
        if kind is LocatorKind.TESTID:
            return [element for element in self.elements if element.attributes.get("data-testid") == query]
        parts = [part.strip() for part in query.split(",")]
        return [element for element in self.elements if any(_matches(element, part) for part in parts)]

    def raw_markup(self) -> str:
        return self.markup

    def element_at(self, x: float, y: float) -> FakeElement | None:
        for element in self.elements:
            box = element.box
            if box.x <= x <= box.x + box.width and box.y <= y <= box.y + box.height:
                return element
        return None


def _matches(element: FakeElement, selector: str) -> bool:
    if selector == "*":
        return True
    if selector.startswith("#"):
        return element.attributes.get("id") == selector[1:]
    match = SIMPLE_CSS.match(selector)
    if not match:
        return False
    if match.group("tag") and match.group("tag") != element.tag:
        return False
    if match.group("attr"):
        return element.attributes.get(match.group("attr")) == match.group("value")
    return True


class FakeSuggester:
    """Scripted AI collaborator that counts its calls."""

    def __init__(self, suggestion=None, delay: float = 0.0, error: Exception | None = None) -> None:
        self.suggestion = suggestion
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str, float]] = []

    def suggest(self, description: str, markup: str, timeout: float):
        self.calls.append((description, markup, timeout))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.suggestion


class FailingStore:
    """Ledger store whose storage layer is broken."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    def append(self, record) -> None:
        raise self.error

    def read(self, locator_id: str):
        raise self.error

    def locator_ids(self):
        raise self.error


class SteppingClock:
    def __init__(self, start: float = 1_000.0, step: float = 1.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


def login_page() -> FakePage:
    button = FakeElement(
        "button",
        {"data-testid": "login-btn", "aria-label": "Login", "type": "submit"},
        text="Login",
        depth=4,
    )
    heading = FakeElement("h1", {"class": "title"}, text="Welcome back", depth=2)
    email = FakeElement("input", {"id": "email", "name": "email"}, depth=4)
    return FakePage([heading, email, button], markup="<form><input id='email'><button>Login</button></form>")
