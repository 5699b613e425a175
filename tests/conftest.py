import os

# main builds its settings at import time
os.environ.setdefault("APP_ENV", "testing")

import pytest

from config import get_settings


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Drop cached settings so environment tweaks in one test don't leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
