from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path


class ArtifactManager:
    """Creates and manages markup captured for failed resolutions."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.dom_root = self.root / "dom_snapshots"
        self._ensure_structure()

    def _ensure_structure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.dom_root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def timestamp() -> str:
        return datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")

    def write_dom_snapshot(self, locator_id: str, markup: str, timestamp: str | None = None) -> Path:
        stamp = timestamp or self.timestamp()
        path = self.dom_root / f"{stamp}_{_safe_name(locator_id)}.html"
        path.write_text(markup, encoding="utf-8")
        return path


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", value).strip("_") or "locator"
