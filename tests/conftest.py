"""
Shared fixtures.
"""

import pytest

from cascade_detect.backend import probe


@pytest.fixture(autouse=True)
def _reset_probe_cache():
    probe.cache_clear()
    yield
    probe.cache_clear()
