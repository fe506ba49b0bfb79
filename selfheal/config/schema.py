from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LocatorKind(str, Enum):
    CSS = "css"
    XPATH = "xpath"
    ID = "id"
    TESTID = "testid"


class LocatorSpec(BaseModel):
    """Declared intent to find exactly one element on a page."""

    model_config = ConfigDict(frozen=True)

    primary_query: str
    kind: LocatorKind = LocatorKind.CSS
    expected_attributes: dict[str, str] = Field(default_factory=dict)
    expected_text: str | None = None
    description: str | None = None
    locator_id: str | None = None
    tag: str | None = None

    @field_validator("primary_query")
    @classmethod
    def validate_primary_query(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("primary_query must not be empty")
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, value):
        if isinstance(value, str):
            return value.lower()
        return value

    @property
    def ledger_key(self) -> str:
        return self.locator_id or f"{self.kind.value}:{self.primary_query}"

    def describe(self) -> str:
        """Falls back to a generated description when the author gave none."""

        if self.description:
            return self.description
        parts = [f"element located by {self.kind.value} query {self.primary_query!r}"]
        if self.tag:
            parts.append(f"tag <{self.tag}>")
        for name, value in sorted(self.expected_attributes.items()):
            parts.append(f"{name}={value!r}")
        if self.expected_text:
            parts.append(f"text {self.expected_text!r}")
        return ", ".join(parts)


class MatcherWeights(BaseModel):
    id: float = 0.30
    testid: float = 0.30
    aria_label: float = 0.20
    text: float = 0.20
    aria_similarity_threshold: float = 0.8

    @field_validator("id", "testid", "aria_label", "text", "aria_similarity_threshold")
    @classmethod
    def validate_unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("weights and thresholds must be within [0, 1]")
        return value


class ResolverSettings(BaseModel):
    attribute_threshold: float = 0.7
    ai_confidence_threshold: float = 0.7
    ai_timeout_seconds: float = 10.0
    promotion_window: int = 3
    strict: bool = False
    score_mode: Literal["normalized", "absolute"] = "normalized"
    weights: MatcherWeights = Field(default_factory=MatcherWeights)
    artifacts_root: str | None = None

    @field_validator("promotion_window")
    @classmethod
    def validate_promotion_window(cls, value: int) -> int:
        if value < 1:
            raise ValueError("promotion_window must be at least 1")
        return value

    @field_validator("ai_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("ai_timeout_seconds must be positive")
        return value


class BrowserSettings(BaseModel):
    browser: str = "chrome"
    headless: bool = True
    page_load_timeout_seconds: int = 10

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {"chrome", "firefox"}:
            raise ValueError(f"Unsupported browser: {value}")
        return normalized


class SuiteConfig(BaseModel):
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    locators: list[LocatorSpec] = Field(default_factory=list)

    def get_locator(self, key: str) -> LocatorSpec:
        for locator in self.locators:
            if locator.ledger_key == key:
                return locator
        raise KeyError(f"Unknown locator key: {key}")
