"""Tests for the retry helper."""

from __future__ import annotations

import pytest

import config
from retry import RetryPolicy, call_with_retry


class Transient(Exception):
    pass


class Fatal(Exception):
    pass


def _flaky(failures: list[Exception], value: str = "ok"):
    calls = []

    def func():
        calls.append(1)
        if failures:
            raise failures.pop(0)
        return value

    return func, calls


def test_delays_grow_exponentially_and_cap() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay=2.0, multiplier=2.0, max_delay=5.0)
    assert [policy.delay_for(a) for a in range(4)] == [2.0, 4.0, 5.0, 5.0]


def test_succeeds_after_transient_failures() -> None:
    sleeps = []
    func, calls = _flaky([Transient(), Transient()])

    result = call_with_retry(
        func,
        RetryPolicy(max_attempts=3, base_delay=2.0, multiplier=2.0),
        is_retryable=lambda e: isinstance(e, Transient),
        sleep=sleeps.append,
    )

    assert result == "ok"
    assert len(calls) == 3
    assert sleeps == [2.0, 4.0]


def test_gives_up_after_max_attempts() -> None:
    sleeps = []
    func, calls = _flaky([Transient("1"), Transient("2"), Transient("3"), Transient("4")])

    with pytest.raises(Transient, match="3"):
        call_with_retry(
            func,
            RetryPolicy(max_attempts=3, base_delay=1.0),
            is_retryable=lambda e: isinstance(e, Transient),
            sleep=sleeps.append,
        )

    assert len(calls) == 3
    assert len(sleeps) == 2


def test_non_retryable_error_is_raised_immediately() -> None:
    sleeps = []
    func, calls = _flaky([Fatal()])

    with pytest.raises(Fatal):
        call_with_retry(
            func,
            RetryPolicy(max_attempts=3),
            is_retryable=lambda e: isinstance(e, Transient),
            sleep=sleeps.append,
        )

    assert len(calls) == 1
    assert sleeps == []


def test_policy_from_config(monkeypatch) -> None:
    monkeypatch.setattr(config, "MAX_RETRIES", 5)
    monkeypatch.setattr(config, "RETRY_BASE_DELAY", 0.5)
    monkeypatch.setattr(config, "RETRY_MULTIPLIER", 3.0)
    monkeypatch.setattr(config, "RETRY_MAX_DELAY", 10.0)

    policy = RetryPolicy.from_config()

    assert policy.max_attempts == 5
    assert [policy.delay_for(a) for a in range(4)] == [0.5, 1.5, 4.5, 10.0]
