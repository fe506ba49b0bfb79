from __future__ import annotations

import json
from pathlib import Path

from selfheal.config.schema import SuiteConfig


class ConfigLoader:
    """Loads and validates the JSON locator suite configuration."""

    @staticmethod
    def load(path: str | Path) -> SuiteConfig:
        config_path = Path(path)
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return SuiteConfig.model_validate(payload)
