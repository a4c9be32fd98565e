"""Shared test fixtures for sendertally."""

import pytest
import structlog

from sendertally.core.config import SenderTallySettings


@pytest.fixture(autouse=True)
def _set_config_path(monkeypatch, tmp_path):
    """Point SenderTallySettings to an empty test config.yaml and clean env.

    This autouse fixture ensures every test has a valid YAML config file and
    removes any real SENDERTALLY_* env vars from the host environment to
    prevent leakage.

    Tests that need custom config values should write YAML to their own
    tmp_path file and set SENDERTALLY_CONFIG accordingly.
    """
    for var in [
        "SENDERTALLY_ACCESS_TOKEN",
        "SENDERTALLY_TOKEN_FILE",
        "SENDERTALLY_GMAIL",
        "SENDERTALLY_SCHEDULER",
        "SENDERTALLY_REPORT",
        "SENDERTALLY_LOGGING",
    ]:
        monkeypatch.delenv(var, raising=False)
    config = tmp_path / "config.yaml"
    config.write_text("")  # empty = all defaults
    monkeypatch.setenv("SENDERTALLY_CONFIG", str(config))


@pytest.fixture
def mock_settings(monkeypatch):
    """Create SenderTallySettings with the access token set, no pacing delay."""
    monkeypatch.setenv("SENDERTALLY_ACCESS_TOKEN", "test-token")
    return SenderTallySettings().with_overrides(pacing_delay_ms=0)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo configure_logging() so later tests never log to a closed stream."""
    yield
    structlog.reset_defaults()
