"""
Pytest configuration for deterministic testing.
"""

import pytest
import random
import numpy as np


@pytest.fixture(autouse=True)
def set_deterministic_seeds():
    """Automatically set deterministic seeds for all tests."""
    random.seed(0)
    np.random.seed(0)
    yield


@pytest.fixture(autouse=True)
def clear_engine_env(monkeypatch):
    """Keep host environment overrides out of engine configs built in tests."""
    for name in ("PERFTUNER_ADAPTIVE_ENABLED", "PERFTUNER_SEED", "PERFTUNER_STORE_DIR"):
        monkeypatch.delenv(name, raising=False)
    yield
