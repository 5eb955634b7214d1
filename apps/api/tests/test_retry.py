"""
Retry / poll combinator tests

Both helpers take injected sleep and clock callables; nothing here waits.
"""
import pytest

from services.retry import (
    PollPolicy,
    RetryExhausted,
    RetryPolicy,
    call_with_retries,
    poll_until,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestRetryPolicy:
    def test_from_millis_converts_delay(self):
        policy = RetryPolicy.from_millis(300, 1000)
        assert policy.max_attempts == 300
        assert policy.delay_s == 1.0

    def test_from_millis_clamps_to_one_attempt(self):
        assert RetryPolicy.from_millis(0, 10).max_attempts == 1

    def test_poll_policy_from_millis(self):
        policy = PollPolicy.from_millis(150_000, 250)
        assert policy.timeout_s == 150.0
        assert policy.interval_s == 0.25


class TestCallWithRetries:
    def test_returns_first_success_without_sleeping(self):
        clock = FakeClock()
        assert call_with_retries(lambda: "ok", RetryPolicy(3, 1.0), sleep=clock.sleep) == "ok"
        assert clock.sleeps == []

    def test_retries_until_success(self):
        clock = FakeClock()
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("not yet")
            return "up"

        failures = []
        result = call_with_retries(
            flaky,
            RetryPolicy(5, 0.5),
            sleep=clock.sleep,
            on_failure=lambda attempt, e: failures.append(attempt),
        )
        assert result == "up"
        assert calls["n"] == 3
        assert failures == [1, 2]
        assert clock.sleeps == [0.5, 0.5]

    def test_exhaustion_raises_with_last_error(self):
        clock = FakeClock()

        def down():
            raise ConnectionError("refused")

        with pytest.raises(RetryExhausted) as exc:
            call_with_retries(down, RetryPolicy(4, 1.0), sleep=clock.sleep)

        assert exc.value.attempts == 4
        assert isinstance(exc.value.last_error, ConnectionError)
        # No sleep after the final attempt
        assert len(clock.sleeps) == 3


class TestPollUntil:
    def test_true_immediately_checks_once(self):
        clock = FakeClock()
        checks = []

        def ready():
            checks.append(1)
            return True

        assert poll_until(ready, PollPolicy(10.0, 0.25), clock=clock, sleep=clock.sleep) is True
        assert len(checks) == 1
        assert clock.sleeps == []

    def test_becomes_true_before_deadline(self):
        clock = FakeClock()
        assert poll_until(lambda: clock.now >= 1.0, PollPolicy(5.0, 0.25), clock=clock, sleep=clock.sleep)
        assert clock.now == pytest.approx(1.0)

    def test_times_out(self):
        clock = FakeClock()
        assert poll_until(lambda: False, PollPolicy(1.0, 0.25), clock=clock, sleep=clock.sleep) is False
        assert clock.now == pytest.approx(1.0)

    def test_last_sleep_never_overshoots_deadline(self):
        clock = FakeClock()
        poll_until(lambda: False, PollPolicy(0.6, 0.25), clock=clock, sleep=clock.sleep)
        assert clock.sleeps[:2] == [0.25, 0.25]
        assert clock.sleeps[2] == pytest.approx(0.1)
        assert clock.now == pytest.approx(0.6)

    def test_zero_timeout_still_checks_once(self):
        clock = FakeClock()
        checks = []
        poll_until(lambda: checks.append(1) or False, PollPolicy(0.0, 0.25), clock=clock, sleep=clock.sleep)
        assert len(checks) == 1
