from __future__ import annotations

import time
from typing import Callable, Iterator, Protocol

from selfheal.core.exceptions import PersistenceError
from selfheal.core.metadata import HealingRecord


class LedgerStore(Protocol):
    """Storage backing a ledger.

    Stores should raise ``PersistenceError`` on storage failures; the ledger
    wraps anything else a store raises into one.
    """

    def append(self, record: HealingRecord) -> None: ...

    def read(self, locator_id: str) -> list[HealingRecord]: ...

    def locator_ids(self) -> list[str]: ...


class HealingHistory:
    """Restartable view over the records of one locator.

    Every iteration reads the store again, so a new pass observes records
    appended since the previous one.
    """

    def __init__(self, store: LedgerStore, locator_id: str) -> None:
        self.store = store
        self.locator_id = locator_id

    def __iter__(self) -> Iterator[HealingRecord]:
        records = self._read()
        return iter(sorted(records, key=lambda record: record.timestamp))

    def __len__(self) -> int:
        return len(self._read())

    def _read(self) -> list[HealingRecord]:
        try:
            return list(self.store.read(self.locator_id))
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001 - any storage-layer failure is a persistence failure.
            raise PersistenceError(f"Could not read healing records for {self.locator_id}: {exc}") from exc


class HealingLedger:
    """Append-only record of healing events and the auto-promotion rule."""

    def __init__(
        self,
        store: LedgerStore,
        promotion_window: int = 3,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.promotion_window = promotion_window
        self.clock = clock

    def record(
        self,
        locator_id: str,
        original_query: str,
        healed_query: str,
        strategy_used: str,
        confidence: float,
        succeeded: bool,
    ) -> HealingRecord:
        record = HealingRecord(
            locator_id=locator_id,
            original_query=original_query,
            healed_query=healed_query if succeeded else "",
            strategy_used=strategy_used,
            confidence=max(0.0, min(float(confidence), 1.0)),
            succeeded=succeeded,
            timestamp=self.clock(),
        )
        try:
            self.store.append(record)
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001 - any storage-layer failure is a persistence failure.
            raise PersistenceError(f"Could not append healing record for {locator_id}: {exc}") from exc
        return record

    def history(self, locator_id: str) -> HealingHistory:
        return HealingHistory(self.store, locator_id)

    def should_auto_promote(self, locator_id: str, n: int | None = None) -> bool:
        window = self.promotion_window if n is None else n
        if window < 1:
            raise ValueError("promotion window must be at least 1")
        records = list(self.history(locator_id))
        if len(records) < window:
            return False
        recent = records[-window:]
        if not all(record.succeeded for record in recent):
            return False
        healed_queries = {record.healed_query for record in recent}
        return len(healed_queries) == 1 and "" not in healed_queries

    def latest_healed_query(self, locator_id: str) -> str | None:
        records = list(self.history(locator_id))
        if not records or not records[-1].succeeded:
            return None
        return records[-1].healed_query

    def locator_ids(self) -> list[str]:
        try:
            return list(self.store.locator_ids())
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001 - any storage-layer failure is a persistence failure.
            raise PersistenceError(f"Could not list ledger locators: {exc}") from exc
