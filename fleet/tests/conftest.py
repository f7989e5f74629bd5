import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _clear_cache():
    # read models and throttles share the cache; each test starts cold
    cache.clear()
    yield
    cache.clear()
