"""Root-level pytest fixtures for the flowmap test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus an in-memory fetcher so reconciliation tests never touch
the network.
All tests must use these fixtures instead of creating raw dict configs.
"""

import pytest

from flowmap.schemas import ParamConfig, UserConfig, resolve_config
from tests.helpers.fake_sources import FakeFetcher


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration pointing at ``table.csv``.

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.

    Examples
    --------
    >>> def test_reconciler_init(internal_config):
    ...     reconciler = FlowReconciler(internal_config)
    ...     assert reconciler.id_column == "MapID"
    """
    return resolve_config(param_config, UserConfig(table_path="table.csv"), None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_column(make_config):
    ...     config = make_config(id_column="SegmentID")
    ...     assert FlowReconciler(config).id_column == "SegmentID"
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        user_overrides.setdefault("table_path", "table.csv")
        return resolve_config(param_config, UserConfig(**user_overrides), None)

    return _make


# =============================================================================
# Fetch Fixtures
# =============================================================================

@pytest.fixture
def fake_fetcher():
    """FakeFetcher class; call it with a {locator: contents} dict."""
    return FakeFetcher
