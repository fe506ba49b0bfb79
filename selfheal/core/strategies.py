from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from selfheal.config.schema import LocatorKind, LocatorSpec, ResolverSettings
from selfheal.core.exceptions import AmbiguousMatchError, InvalidQuerySyntax, SuggestionTimeout
from selfheal.core.metadata import (
    ElementHandle,
    PageSnapshot,
    ResolutionState,
    ScoredCandidate,
    StrategyName,
)
from selfheal.utils.dom_extract import (
    ALL_ELEMENTS,
    best_query,
    candidate_query,
    safe_tag,
    safe_text,
    text_query,
)
from selfheal.utils.scoring import AttributeMatcher

logger = logging.getLogger(__name__)


class Suggester(Protocol):
    def suggest(self, description: str, markup: str, timeout: float): ...


class Strategy(Protocol):
    name: StrategyName
    state: ResolutionState

    def attempt(self, spec: LocatorSpec, page: PageSnapshot) -> ScoredCandidate | None: ...


class ExactStrategy:
    """Runs the primary query and accepts a single unambiguous match."""

    name = StrategyName.EXACT
    state = ResolutionState.TRYING_EXACT

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def attempt(self, spec: LocatorSpec, page: PageSnapshot) -> ScoredCandidate | None:
        matches = list(page.query_all(spec.primary_query, spec.kind))
        if len(matches) == 1:
            return ScoredCandidate(
                element=matches[0],
                score=1.0,
                matched_by=self.name,
                query=spec.primary_query,
                kind=spec.kind,
            )
        if len(matches) > 1:
            if self.strict:
                raise AmbiguousMatchError(spec.primary_query, len(matches))
            logger.debug("Primary query %r is ambiguous (%d matches)", spec.primary_query, len(matches))
        return None


class AttributeSimilarityStrategy:
    """Scores every element of the locator's tag family and keeps the best one."""

    name = StrategyName.ATTRIBUTE_SIMILARITY
    state = ResolutionState.TRYING_ATTRIBUTE

    def __init__(self, matcher: AttributeMatcher, threshold: float = 0.7) -> None:
        self.matcher = matcher
        self.threshold = threshold

    def attempt(self, spec: LocatorSpec, page: PageSnapshot) -> ScoredCandidate | None:
        if not spec.expected_attributes and not spec.expected_text:
            return None
        best: ElementHandle | None = None
        best_score = -1.0
        for element in page.query_all(candidate_query(spec), LocatorKind.CSS):
            score = self.matcher.score(spec, element)
            # strict comparison keeps the first element in document order on ties
            if score > best_score:
                best, best_score = element, score
        if best is None or best_score < self.threshold:
            logger.debug("Best attribute score %.2f below threshold %.2f", max(best_score, 0.0), self.threshold)
            return None
        query, kind = best_query(best)
        return ScoredCandidate(element=best, score=best_score, matched_by=self.name, query=query, kind=kind)


class TextMatchStrategy:
    """Finds elements whose visible text equals the expected text."""

    name = StrategyName.TEXT
    state = ResolutionState.TRYING_TEXT

    def attempt(self, spec: LocatorSpec, page: PageSnapshot) -> ScoredCandidate | None:
        expected = _normalize_text(spec.expected_text or "")
        if not expected:
            return None
        matches = [
            (index, element)
            for index, element in enumerate(page.query_all(ALL_ELEMENTS, LocatorKind.CSS))
            if _normalize_text(safe_text(element)) == expected
        ]
        if not matches:
            return None
        _, element = min(matches, key=lambda item: (_depth(item[1]), item[0]))
        return ScoredCandidate(
            element=element,
            score=round(1.0 / len(matches), 4),
            matched_by=self.name,
            query=text_query(safe_tag(element), expected),
            kind=LocatorKind.XPATH,
        )


class AISuggestionStrategy:
    """Asks the AI collaborator once, bounded by ``timeout`` seconds."""

    name = StrategyName.AI_SUGGESTION
    state = ResolutionState.TRYING_AI

    def __init__(self, suggester: Suggester | None, timeout: float = 10.0, threshold: float = 0.7) -> None:
        self.suggester = suggester
        self.timeout = timeout
        self.threshold = threshold

    def attempt(self, spec: LocatorSpec, page: PageSnapshot) -> ScoredCandidate | None:
        if self.suggester is None:
            return None
        suggestion = self._ask(spec.describe(), page)
        if suggestion is None:
            return None
        if suggestion.confidence < self.threshold:
            logger.debug("AI suggestion %r rejected at confidence %.2f", suggestion.query, suggestion.confidence)
            return None
        kind = suggestion.resolved_kind
        try:
            matches = list(page.query_all(suggestion.query, kind))
        except InvalidQuerySyntax:
            logger.warning("AI suggested an unparseable query %r", suggestion.query)
            return None
        if not matches:
            logger.debug("AI suggestion %r matched nothing", suggestion.query)
            return None
        return ScoredCandidate(
            element=matches[0],
            score=suggestion.confidence,
            matched_by=self.name,
            query=suggestion.query,
            kind=kind,
        )

    def _ask(self, description: str, page: PageSnapshot):
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="selfheal-ai")
        try:
            future = executor.submit(self._call, description, page)
            return future.result(timeout=self.timeout)
        except (FuturesTimeoutError, SuggestionTimeout):
            logger.warning("AI suggestion timed out after %.1fs", self.timeout)
            return None
        except Exception as exc:  # noqa: BLE001 - collaborator failures count as a miss.
            logger.warning("AI suggestion failed: %s", exc)
            return None
        finally:
            executor.shutdown(wait=False)

    def _call(self, description: str, page: PageSnapshot):
        return self.suggester.suggest(description, page.raw_markup(), self.timeout)


@dataclass(slots=True)
class ChainResult:
    candidate: ScoredCandidate | None
    visited: list[ResolutionState] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.candidate is not None


class StrategyChain:
    """Tries strategies in priority order and stops at the first accepted candidate."""

    def __init__(self, strategies: Sequence[Strategy]) -> None:
        self.strategies = list(strategies)

    @classmethod
    def default(
        cls,
        settings: ResolverSettings | None = None,
        suggester: Suggester | None = None,
    ) -> StrategyChain:
        settings = settings or ResolverSettings()
        matcher = AttributeMatcher(settings.weights, settings.score_mode)
        return cls(
            [
                ExactStrategy(strict=settings.strict),
                AttributeSimilarityStrategy(matcher, settings.attribute_threshold),
                TextMatchStrategy(),
                AISuggestionStrategy(
                    suggester,
                    timeout=settings.ai_timeout_seconds,
                    threshold=settings.ai_confidence_threshold,
                ),
            ]
        )

    def resolve(self, spec: LocatorSpec, page: PageSnapshot) -> ChainResult:
        result = ChainResult(candidate=None, visited=[ResolutionState.START])
        for strategy in self.strategies:
            result.visited.append(strategy.state)
            candidate = strategy.attempt(spec, page)
            if candidate is not None:
                result.candidate = candidate
                result.visited.append(ResolutionState.RESOLVED)
                return result
        result.visited.append(ResolutionState.FAILED)
        return result


def _normalize_text(value: str) -> str:
    return " ".join(value.split())


def _depth(element: ElementHandle) -> int:
    try:
        return element.dom_depth()
    except Exception:  # noqa: BLE001 - unknown depth sorts last.
        return 1_000_000
