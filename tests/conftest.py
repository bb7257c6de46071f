"""Shared fixtures for the unit suite."""

import pytest


@pytest.fixture(autouse=True)
def _isolate_pulse_env(monkeypatch):
    """Keep host environment settings out of configuration tests."""
    for key in (
        "HOMEBREW_USER",
        "COLIMA_PROFILE",
        "COLIMA_RUNTIME",
        "COLIMA_VM_TYPE",
        "PRUNE_MODE",
        "CLEAN_OTHER_COLIMA_DAEMONS",
        "RESET_CONFIRM_TOKEN",
        "LABEL",
        "LOG_PATH",
        "CONTAINERS_DIR",
        "PULSE_LOG_FILE",
        "PULSE_LOG_LEVEL",
        "PULSE_LOG_JSON",
    ):
        monkeypatch.delenv(key, raising=False)
