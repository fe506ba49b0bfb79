from __future__ import annotations

import logging

from selfheal.config.schema import SuiteConfig
from selfheal.core.browser import SeleniumElement, SeleniumPage
from selfheal.core.metadata import PromotionSuggested
from selfheal.core.resolver import Resolver
from selfheal.utils.dom_extract import infer_kind

logger = logging.getLogger(__name__)


class SafeFinder:
    """Harness-side element lookup by suite key with automatic healing.

    Promotions suggested by the resolver are kept as in-memory overrides:
    the suite definition itself is never rewritten.
    """

    def __init__(self, driver, suite_config: SuiteConfig, resolver: Resolver) -> None:
        self.driver = driver
        self.suite_config = suite_config
        self.resolver = resolver
        self.selector_overrides: dict[str, PromotionSuggested] = {}
        resolver.add_listener(self.apply_promotion)

    def find(self, locator_key: str) -> SeleniumElement:
        spec = self.suite_config.get_locator(locator_key)
        override = self.selector_overrides.get(spec.ledger_key)
        if override is not None:
            spec = spec.model_copy(
                update={"primary_query": override.new_query, "kind": override.kind, "locator_id": spec.ledger_key}
            )
        return self.resolver.resolve(spec, SeleniumPage(self.driver))

    def find_by_query(self, query: str) -> SeleniumElement | None:
        matches = SeleniumPage(self.driver).query_all(query, infer_kind(query))
        return matches[0] if matches else None

    def apply_promotion(self, event: PromotionSuggested) -> None:
        logger.info("Overriding %s with promoted query %r", event.locator_id, event.new_query)
        self.selector_overrides[event.locator_id] = event
