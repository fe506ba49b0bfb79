from __future__ import annotations

from difflib import SequenceMatcher
from typing import Iterable

from selfheal.config.schema import LocatorSpec, MatcherWeights
from selfheal.core.metadata import ElementHandle
from selfheal.utils.dom_extract import safe_attribute, safe_text

DEFAULT_WEIGHTS = MatcherWeights()


class AttributeMatcher:
    """Scores how closely a live element matches a locator's remembered attributes.

    Each criterion the locator declares contributes its weight when the element
    satisfies it. In ``normalized`` mode the sum is divided by the total weight
    of the declared criteria; in ``absolute`` mode the raw sum is used. Either
    way the result is clamped to ``[0, 1]`` and a missing attribute is simply a
    non-match.
    """

    def __init__(self, weights: MatcherWeights | None = None, mode: str = "normalized") -> None:
        if mode not in {"normalized", "absolute"}:
            raise ValueError(f"Unsupported score mode: {mode}")
        self.weights = weights or DEFAULT_WEIGHTS
        self.mode = mode

    def score(self, spec: LocatorSpec, element: ElementHandle) -> float:
        declared = 0.0
        matched = 0.0
        for weight, satisfied in self._criteria(spec, element):
            declared += weight
            if satisfied:
                matched += weight
        if declared <= 0.0:
            return 0.0
        total = matched / declared if self.mode == "normalized" else matched
        return round(max(0.0, min(total, 1.0)), 4)

    def rank(self, spec: LocatorSpec, elements: Iterable[ElementHandle]) -> list[tuple[ElementHandle, float]]:
        """Scores elements, highest first; equal scores keep document order."""

        scored = [(element, self.score(spec, element)) for element in elements]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def _criteria(self, spec: LocatorSpec, element: ElementHandle):
        expected = spec.expected_attributes
        weights = self.weights
        if "id" in expected:
            yield weights.id, safe_attribute(element, "id") == expected["id"]
        if "data-testid" in expected:
            yield weights.testid, safe_attribute(element, "data-testid") == expected["data-testid"]
        if "aria-label" in expected:
            actual = safe_attribute(element, "aria-label")
            ratio = similarity(expected["aria-label"], actual) if actual else 0.0
            yield weights.aria_label, ratio > weights.aria_similarity_threshold
        if spec.expected_text:
            yield weights.text, spec.expected_text.strip().lower() in safe_text(element).lower()


def similarity(left: str, right: str) -> float:
    left = " ".join(left.split()).lower()
    right = " ".join(right.split()).lower()
    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0
    return SequenceMatcher(a=left, b=right).ratio()
