"""Tests for the violation reporter."""

from abuse_guard.rate_limit.engine import RateLimitEngine
from abuse_guard.rate_limit.violations import Violation, ViolationReporter


def test_no_violations_when_nothing_blocked(engine: RateLimitEngine, reporter: ViolationReporter) -> None:
    assert reporter.get_rate_limit_violations() == []

    engine.record_attempt("login", "u1", False)

    assert reporter.get_rate_limit_violations() == []


def test_blocked_key_is_reported(engine: RateLimitEngine, reporter: ViolationReporter, clock) -> None:
    for _ in range(5):
        engine.record_attempt("login", "email_12345", False)

    violations = reporter.get_rate_limit_violations()

    assert violations == [
        Violation(
            endpoint="login",
            identifier="email_12345",
            blocked_until=clock() + 900,
            violation_count=1,
        )
    ]


def test_lapsed_block_is_not_reported(engine: RateLimitEngine, reporter: ViolationReporter, clock) -> None:
    for _ in range(3):
        engine.record_attempt("signup", "u1", False)

    clock.advance(3600)

    assert reporter.get_rate_limit_violations() == []


def test_reset_removes_violation(engine: RateLimitEngine, reporter: ViolationReporter) -> None:
    for _ in range(3):
        engine.record_attempt("createPayment", "u1", False)

    engine.reset_rate_limit("createPayment", "u1")

    assert reporter.get_rate_limit_violations() == []


def test_sorted_by_expiry(engine: RateLimitEngine, reporter: ViolationReporter) -> None:
    for _ in range(3):
        engine.record_attempt("signup", "slow", False)  # 1 hour block
    for _ in range(10):
        engine.record_attempt("createProject", "fast", False)  # 5 minute block

    violations = reporter.get_rate_limit_violations()

    assert [(v.endpoint, v.identifier) for v in violations] == [
        ("createProject", "fast"),
        ("signup", "slow"),
    ]


def test_corrupt_records_are_skipped(engine: RateLimitEngine, reporter: ViolationReporter, kv) -> None:
    kv.set("rate_limit:login:broken", {"violation_count": "x"})
    for _ in range(5):
        engine.record_attempt("login", "u1", False)

    assert [v.identifier for v in reporter.get_rate_limit_violations()] == ["u1"]
