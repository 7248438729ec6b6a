"""Pytest configuration and fixtures for Football Trader tests."""

import shutil
from pathlib import Path

import pytest

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and the user's session cache."""
    from football_trader.config import Settings

    return Settings(
        _env_file=None,
        betfair_app_key="testappkey",
        session_dir=tmp_path / ".betfair",
    )


@pytest.fixture
def tracking_config():
    """Tracking configuration matching defaults.yaml."""
    return {
        "event_type_ids": ["1"],
        "market_types": ["MATCH_ODDS"],
        "default_window_days": 7,
        "price_depth": 3,
    }


@pytest.fixture
def analysis_config():
    """Analysis configuration matching defaults.yaml."""
    return {
        "stake": 100,
        "commission": 0.02,
        "odds_ranges": [
            [1.2, 1.99],
            [2.0, 2.99],
            [3.0, 4.99],
            [5.0, 9.99],
            [10.0, 19.99],
            [20.0, 29.99],
        ],
    }


@pytest.fixture
def store_file(tmp_path):
    """A writable copy of the sample store document."""
    path = tmp_path / "store.json"
    shutil.copy(DATA_DIR / "store.json", path)
    return path


@pytest.fixture
def sample_store(store_file, tracking_config):
    """The sample store loaded from disk."""
    from football_trader.services.pricing import PriceStore

    return PriceStore.load(store_file, config=tracking_config)


@pytest.fixture
def empty_store(tmp_path, tracking_config):
    """An empty store that would be saved under tmp_path."""
    from football_trader.services.pricing import PriceStore

    return PriceStore(tmp_path / "store.json", config=tracking_config)


@pytest.fixture
def fake_betfair():
    from tests.fakes import FakeBetfair

    return FakeBetfair()
