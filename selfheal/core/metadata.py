from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence, runtime_checkable

from selfheal.config.schema import LocatorKind


class StrategyName(str, Enum):
    EXACT = "exact"
    ATTRIBUTE_SIMILARITY = "attribute_similarity"
    TEXT = "text"
    AI_SUGGESTION = "ai_suggestion"


class ResolutionState(str, Enum):
    START = "start"
    TRYING_EXACT = "trying_exact"
    TRYING_ATTRIBUTE = "trying_attribute"
    TRYING_TEXT = "trying_text"
    TRYING_AI = "trying_ai"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float


@runtime_checkable
class ElementHandle(Protocol):
    def get_attribute(self, name: str) -> str | None: ...

    def get_text(self) -> str: ...

    def bounding_box(self) -> BoundingBox: ...

    def tag_name(self) -> str: ...

    def dom_depth(self) -> int: ...


@runtime_checkable
class PageSnapshot(Protocol):
    def query_all(self, query: str, kind: LocatorKind = LocatorKind.CSS) -> Sequence[ElementHandle]: ...

    def raw_markup(self) -> str: ...

    def element_at(self, x: float, y: float) -> ElementHandle | None: ...


@dataclass(slots=True)
class ScoredCandidate:
    element: ElementHandle
    score: float
    matched_by: StrategyName
    query: str = ""
    kind: LocatorKind = LocatorKind.CSS


@dataclass(frozen=True, slots=True)
class HealingRecord:
    locator_id: str
    original_query: str
    healed_query: str
    strategy_used: str
    confidence: float
    succeeded: bool
    timestamp: float

    def to_payload(self) -> dict:
        return {
            "locator_id": self.locator_id,
            "original_query": self.original_query,
            "healed_query": self.healed_query,
            "strategy_used": self.strategy_used,
            "confidence": self.confidence,
            "succeeded": self.succeeded,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> HealingRecord:
        return cls(
            locator_id=payload["locator_id"],
            original_query=payload["original_query"],
            healed_query=payload.get("healed_query", ""),
            strategy_used=payload.get("strategy_used", ""),
            confidence=float(payload.get("confidence", 0.0)),
            succeeded=bool(payload.get("succeeded", False)),
            timestamp=float(payload["timestamp"]),
        )


@dataclass(frozen=True, slots=True)
class PromotionSuggested:
    locator_id: str
    new_query: str
    kind: LocatorKind = LocatorKind.CSS


@dataclass(slots=True)
class Resolution:
    element: ElementHandle
    strategy: StrategyName
    score: float
    query: str
    kind: LocatorKind
    visited: list[ResolutionState] = field(default_factory=list)

    @property
    def healed(self) -> bool:
        return self.strategy is not StrategyName.EXACT
