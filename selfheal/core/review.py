from __future__ import annotations

import logging
from typing import Iterable

from selfheal.core.exceptions import PersistenceError
from selfheal.core.ledger import HealingLedger
from selfheal.core.metadata import PromotionSuggested
from selfheal.utils.dom_extract import infer_kind

logger = logging.getLogger(__name__)


def review_promotions(
    ledger: HealingLedger,
    locator_ids: Iterable[str] | None = None,
    n: int | None = None,
) -> list[PromotionSuggested]:
    """Lists promotions the ledger currently supports.

    Meant to be called on a cadence by an external scheduler; it only reads
    the ledger.
    """

    ids = list(locator_ids) if locator_ids is not None else ledger.locator_ids()
    suggestions: list[PromotionSuggested] = []
    for locator_id in ids:
        try:
            if not ledger.should_auto_promote(locator_id, n):
                continue
            new_query = ledger.latest_healed_query(locator_id)
        except PersistenceError as exc:
            logger.warning("Skipping promotion review for %s: %s", locator_id, exc)
            continue
        if new_query:
            suggestions.append(PromotionSuggested(locator_id, new_query, infer_kind(new_query)))
    return suggestions
