import pytest

from adapters.custodians.token_cache import AccessTokenCache
from core.domain.errors import NotCached


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_empty_cache_is_invalid_and_get_raises():
    cache = AccessTokenCache(FakeClock())

    assert cache.is_valid() is False
    with pytest.raises(NotCached):
        cache.get()


def test_value_valid_until_ttl_elapses():
    clock = FakeClock()
    cache = AccessTokenCache(clock)
    cache.set("access", 60)

    clock.now += 59.9
    assert cache.is_valid() is True
    assert cache.get() == "access"

    clock.now += 0.1
    assert cache.is_valid() is False


@pytest.mark.parametrize("ttl", [0, None, -5])
def test_zero_or_missing_ttl_is_never_trusted(ttl):
    cache = AccessTokenCache(FakeClock())
    cache.set("access", ttl)

    assert cache.is_valid() is False
    # El valor sigue legible aunque no sea confiable.
    assert cache.get() == "access"


def test_clear_drops_value():
    cache = AccessTokenCache(FakeClock())
    cache.set("access", 60)
    cache.clear()

    assert cache.is_valid() is False
    assert cache.ttl_seconds is None
