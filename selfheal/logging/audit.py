from __future__ import annotations

import json
import threading
from collections import defaultdict
from pathlib import Path

from selfheal.core.exceptions import PersistenceError
from selfheal.core.metadata import HealingRecord


class InMemoryLedgerStore:
    """Process-local ledger store; reads return snapshot copies."""

    def __init__(self) -> None:
        self._records: dict[str, list[HealingRecord]] = defaultdict(list)
        self._lock = threading.Lock()

    def append(self, record: HealingRecord) -> None:
        with self._lock:
            self._records[record.locator_id].append(record)

    def read(self, locator_id: str) -> list[HealingRecord]:
        with self._lock:
            return list(self._records.get(locator_id, ()))

    def locator_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)


class JsonlLedgerStore:
    """Persists healing records as one JSON object per line."""

    def __init__(self, root: str | Path = "artifacts", filename: str = "healed_elements.jsonl") -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.path = self.root / filename
        self._lock = threading.Lock()

    def append(self, record: HealingRecord) -> None:
        line = json.dumps(record.to_payload(), sort_keys=True) + "\n"
        with self._lock:
            try:
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line)
            except OSError as exc:
                raise PersistenceError(f"Could not write {self.path}: {exc}") from exc

    def read(self, locator_id: str) -> list[HealingRecord]:
        return [record for record in self._read_all() if record.locator_id == locator_id]

    def locator_ids(self) -> list[str]:
        return sorted({record.locator_id for record in self._read_all()})

    def _read_all(self) -> list[HealingRecord]:
        with self._lock:
            if not self.path.exists():
                return []
            try:
                with self.path.open("r", encoding="utf-8") as handle:
                    lines = handle.readlines()
            except OSError as exc:
                raise PersistenceError(f"Could not read {self.path}: {exc}") from exc
        records: list[HealingRecord] = []
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                records.append(HealingRecord.from_payload(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                raise PersistenceError(f"Corrupt ledger line {number} in {self.path}") from exc
        return records
