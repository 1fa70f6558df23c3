"""
tests/test_utils/test_circuit_breaker.py — CircuitBreaker state machine.
"""

from __future__ import annotations

import pytest

from mgnrega_pipeline.utils.circuit_breaker import CircuitBreaker


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(threshold=3, cooldown=3600.0, clock=clock)


class TestCircuitBreaker:
    def test_starts_closed(self, breaker: CircuitBreaker):
        assert breaker.is_open() is False
        assert breaker.failure_count == 0
        assert breaker.open_until == 0.0
        assert breaker.state == "closed"

    def test_stays_closed_below_threshold(self, breaker: CircuitBreaker):
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.failure_count == 2
        assert breaker.is_open() is False

    def test_opens_after_threshold_failures(self, breaker: CircuitBreaker, clock):
        for _ in range(3):
            breaker.record_failure()
        assert breaker.is_open() is True
        assert breaker.open_until == clock.now + 3600.0
        assert breaker.state == "open"

    def test_open_check_leaves_state_untouched(self, breaker: CircuitBreaker, clock):
        for _ in range(3):
            breaker.record_failure()
        open_until = breaker.open_until
        clock.advance(1800)
        assert breaker.is_open() is True
        assert breaker.failure_count == 3
        assert breaker.open_until == open_until

    def test_resets_after_cooldown(self, breaker: CircuitBreaker, clock):
        for _ in range(3):
            breaker.record_failure()
        clock.advance(3600.01)
        assert breaker.is_open() is False
        assert breaker.failure_count == 0
        assert breaker.open_until == 0.0

    def test_does_not_rearm_while_open(self, breaker: CircuitBreaker, clock):
        for _ in range(3):
            breaker.record_failure()
        first_open_until = breaker.open_until
        clock.advance(600)
        breaker.record_failure()
        assert breaker.failure_count == 4
        assert breaker.open_until == first_open_until

    def test_success_resets_count_only(self, breaker: CircuitBreaker):
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        assert breaker.failure_count == 0
        # Needs a full threshold of new failures to open
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.is_open() is False

    def test_success_does_not_close_open_breaker(self, breaker: CircuitBreaker):
        for _ in range(3):
            breaker.record_failure()
        breaker.record_success()
        assert breaker.failure_count == 0
        assert breaker.is_open() is True

    def test_instances_do_not_share_state(self, clock):
        a = CircuitBreaker(threshold=1, clock=clock)
        b = CircuitBreaker(threshold=1, clock=clock)
        a.record_failure()
        assert a.is_open() is True
        assert b.is_open() is False

    @pytest.mark.parametrize("kwargs", [{"threshold": 0}, {"cooldown": -1.0}])
    def test_invalid_configuration_raises(self, kwargs):
        with pytest.raises(ValueError):
            CircuitBreaker(**kwargs)
