"""Shared test fixtures and configuration for all tests.

This conftest.py provides the catalog, templates and parameter factories
used across unit and integration tests.
"""

from pathlib import Path

import pytest

from render_orchestrator.config import Settings
from render_orchestrator.models.catalog import CompatibilityCatalog, load_catalog
from render_orchestrator.models.parameters import ParameterSet

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Uses the in-memory cache and mock providers so nothing needs Redis or
    the network.
    """
    return Settings(
        # === Application ===
        APP_NAME="Render Orchestrator (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Catalog & Prompts ===
        CATALOG_PATH=str(PROJECT_ROOT / "config" / "catalog.json"),
        PROMPT_TEMPLATES_DIR=str(PROJECT_ROOT / "config" / "prompts"),

        # === Retry (no real waiting in tests) ===
        RETRY_MAX_ATTEMPTS=3,
        RETRY_BASE_DELAY_MS=0,

        # === Providers ===
        PROVIDER_ENDPOINTS=[],
        USE_MOCK_PROVIDERS=True,

        # === Cache ===
        CACHE_ENABLED=True,
        CACHE_BACKEND="memory",

        # === Redis ===
        REDIS_URL="redis://localhost:6379/15",

        PROMETHEUS_ENABLED=False,
    )


@pytest.fixture
def catalog_path() -> Path:
    return PROJECT_ROOT / "config" / "catalog.json"


@pytest.fixture
def templates_dir() -> Path:
    return PROJECT_ROOT / "config" / "prompts"


@pytest.fixture
def catalog(catalog_path: Path) -> CompatibilityCatalog:
    """The shipped compatibility catalog."""
    return load_catalog(catalog_path)


@pytest.fixture
def valid_params() -> ParameterSet:
    """A fully compatible standard render."""
    return ParameterSet(pose="arms-crossed", outfit="hoodie-sweatpants", footwear="jordan-1")


@pytest.fixture
def make_params():
    """Factory fixture to create ParameterSet with overrides.

    Usage:
        def test_something(make_params):
            params = make_params(prop="stone-totem")
    """
    def _create(**overrides) -> ParameterSet:
        values = {"pose": "arms-crossed", "outfit": "hoodie-sweatpants", "footwear": "jordan-1"}
        values.update(overrides)
        return ParameterSet(**values)

    return _create


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
