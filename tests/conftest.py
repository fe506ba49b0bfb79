from __future__ import annotations

from pathlib import Path

import pytest

from selfheal.config.loader import ConfigLoader
from selfheal.core.ledger import HealingLedger
from selfheal.logging.audit import InMemoryLedgerStore
from tests.helpers import SteppingClock


@pytest.fixture()
def suite_config():
    config_path = Path(__file__).resolve().parents[1] / "config" / "resolver_suite.json"
    return ConfigLoader.load(config_path)


@pytest.fixture()
def store():
    return InMemoryLedgerStore()


@pytest.fixture()
def ledger(store):
    return HealingLedger(store, promotion_window=3, clock=SteppingClock())
