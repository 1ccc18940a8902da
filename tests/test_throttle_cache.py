import pytest

from kiracord.errors import FrequencyExceeded
from kiracord.moderation.throttle_cache import ThrottleCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_rejects_after_maximum_and_recovers_after_cooldown():
    clock = FakeClock()
    cache = ThrottleCache(clock=clock)

    assert cache.hit("quote", 2, 1) == 1
    assert cache.hit("quote", 2, 1) == 2
    with pytest.raises(FrequencyExceeded) as excinfo:
        cache.hit("quote", 2, 1)
    assert excinfo.value.translation_key == "command.quote.frequency"
    assert cache.count("quote") == 2

    clock.now = 59.0
    with pytest.raises(FrequencyExceeded):
        cache.hit("quote", 2, 1)

    clock.now = 60.0
    assert cache.hit("quote", 2, 1) == 1


def test_window_starts_at_first_hit():
    clock = FakeClock()
    cache = ThrottleCache(clock=clock)
    clock.now = 100.0
    cache.hit("quote", 5, 1)
    clock.now = 150.0
    cache.hit("quote", 5, 1)
    clock.now = 160.0
    assert cache.count("quote") == 0


def test_operator_bypasses_but_is_counted():
    cache = ThrottleCache(clock=FakeClock())
    cache.hit("quote", 1, 1)
    assert cache.hit("quote", 1, 1, operator=True) == 2
    with pytest.raises(FrequencyExceeded):
        cache.hit("quote", 1, 1)


def test_counters_are_per_command_and_resettable():
    cache = ThrottleCache(clock=FakeClock())
    cache.hit("quote", 1, 1)
    cache.hit("joke", 1, 1)
    cache.reset("quote")
    assert cache.count("quote") == 0
    assert cache.count("joke") == 1
    cache.reset()
    assert len(cache) == 0
