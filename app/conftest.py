"""
Pytest hooks for the bill insight tests.

Tests marked @pytest.mark.live send a real bill to Gemini. They are
skipped unless a marker expression is given on the command line, e.g.

    pytest -m live

Even when selected, each live test also skips itself without
GEMINI_API_KEY (the client cannot authenticate) or without
sample_bills/sample_bill.pdf (there is nothing to extract).
"""
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: test calls the real Gemini API"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip live tests unless the user explicitly selects them."""
    # If the user passed an explicit marker expression, respect it.
    marker_expr = config.getoption("-m", default="")
    if marker_expr:
        return

    skip_live = pytest.mark.skip(
        reason="Live API tests are skipped by default. Run with: pytest -m live"
    )
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)
