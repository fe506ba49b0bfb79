from __future__ import annotations

import logging
from typing import Callable, Iterable

from selfheal.config.schema import LocatorSpec, ResolverSettings
from selfheal.core.exceptions import ElementNotFoundError, PersistenceError
from selfheal.core.ledger import HealingLedger, LedgerStore
from selfheal.core.metadata import (
    ElementHandle,
    HealingRecord,
    PageSnapshot,
    PromotionSuggested,
    Resolution,
    StrategyName,
)
from selfheal.core.strategies import StrategyChain, Suggester
from selfheal.logging.artifacts import ArtifactManager
from selfheal.logging.audit import InMemoryLedgerStore
from selfheal.utils.dom_extract import infer_kind

logger = logging.getLogger(__name__)

PromotionListener = Callable[[PromotionSuggested], None]

EXHAUSTED = "exhausted"


class Resolver:
    """Resolves locators through the strategy chain and bookkeeps healings.

    Only ``InvalidQuerySyntax`` and ``ElementNotFoundError`` (plus
    ``AmbiguousMatchError`` in strict mode) escape ``resolve``. Ledger,
    artifact and listener failures are logged and never change the element
    handed back to the caller.
    """

    def __init__(
        self,
        chain: StrategyChain,
        ledger: HealingLedger | None = None,
        artifact_manager: ArtifactManager | None = None,
        listeners: Iterable[PromotionListener] = (),
    ) -> None:
        self.chain = chain
        self.ledger = ledger
        self.artifact_manager = artifact_manager
        self.listeners: list[PromotionListener] = list(listeners)

    @classmethod
    def from_settings(
        cls,
        settings: ResolverSettings | None = None,
        suggester: Suggester | None = None,
        store: LedgerStore | None = None,
        listeners: Iterable[PromotionListener] = (),
    ) -> Resolver:
        settings = settings or ResolverSettings()
        ledger = HealingLedger(store or InMemoryLedgerStore(), promotion_window=settings.promotion_window)
        artifact_manager = ArtifactManager(settings.artifacts_root) if settings.artifacts_root else None
        return cls(
            StrategyChain.default(settings, suggester),
            ledger=ledger,
            artifact_manager=artifact_manager,
            listeners=listeners,
        )

    def add_listener(self, listener: PromotionListener) -> None:
        self.listeners.append(listener)

    def resolve(self, spec: LocatorSpec, page: PageSnapshot) -> ElementHandle:
        return self.resolve_detailed(spec, page).element

    def resolve_detailed(self, spec: LocatorSpec, page: PageSnapshot) -> Resolution:
        locator_id = spec.ledger_key
        result = self.chain.resolve(spec, page)
        visited = [state.value for state in result.visited]

        if result.candidate is None:
            logger.warning("Locator %s not found (%s)", locator_id, " -> ".join(visited))
            self._record(spec, "", EXHAUSTED, 0.0, succeeded=False)
            self._capture_markup(locator_id, page)
            raise ElementNotFoundError(locator_id, visited)

        candidate = result.candidate
        resolution = Resolution(
            element=candidate.element,
            strategy=candidate.matched_by,
            score=candidate.score,
            query=candidate.query,
            kind=candidate.kind,
            visited=list(result.visited),
        )
        if candidate.matched_by is StrategyName.EXACT:
            return resolution

        logger.info(
            "Healed %s: %r -> %r via %s (score %.2f)",
            locator_id,
            spec.primary_query,
            candidate.query,
            candidate.matched_by.value,
            candidate.score,
        )
        record = self._record(spec, candidate.query, candidate.matched_by.value, candidate.score, succeeded=True)
        if record is not None:
            self._maybe_promote(spec, record)
        return resolution

    def _record(
        self,
        spec: LocatorSpec,
        healed_query: str,
        strategy_used: str,
        confidence: float,
        succeeded: bool,
    ) -> HealingRecord | None:
        if self.ledger is None:
            return None
        try:
            return self.ledger.record(
                locator_id=spec.ledger_key,
                original_query=spec.primary_query,
                healed_query=healed_query,
                strategy_used=strategy_used,
                confidence=confidence,
                succeeded=succeeded,
            )
        except PersistenceError as exc:
            logger.warning("Healing record for %s was not persisted: %s", spec.ledger_key, exc)
            return None

    def _maybe_promote(self, spec: LocatorSpec, record: HealingRecord) -> None:
        if record.healed_query == spec.primary_query:
            return
        try:
            eligible = self.ledger.should_auto_promote(record.locator_id)
        except PersistenceError as exc:
            logger.warning("Promotion check for %s failed: %s", record.locator_id, exc)
            return
        if not eligible:
            return
        event = PromotionSuggested(
            locator_id=record.locator_id,
            new_query=record.healed_query,
            kind=infer_kind(record.healed_query),
        )
        logger.info("Suggesting promotion of %s to %r", event.locator_id, event.new_query)
        for listener in self.listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - listeners must not fail a resolution.
                logger.exception("Promotion listener failed for %s", event.locator_id)

    def _capture_markup(self, locator_id: str, page: PageSnapshot) -> None:
        if self.artifact_manager is None:
            return
        try:
            path = self.artifact_manager.write_dom_snapshot(locator_id, page.raw_markup())
        except Exception as exc:  # noqa: BLE001 - artifacts are best effort.
            logger.warning("Could not capture markup for %s: %s", locator_id, exc)
            return
        logger.info("Captured markup for %s at %s", locator_id, path)
