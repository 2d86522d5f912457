"""Tests for attempt record persistence."""

import logging

import pytest

from abuse_guard.adapters.storage.in_memory import InMemoryKeyValueStore
from abuse_guard.rate_limit.store import AttemptRecord, AttemptStore


def test_load_missing_returns_none(attempt_store: AttemptStore) -> None:
    assert attempt_store.load("login", "u1") is None


def test_save_and_load_round_trip(attempt_store: AttemptStore, kv: InMemoryKeyValueStore) -> None:
    record = AttemptRecord(
        timestamps=[1.0, 2.0],
        consecutive_failures=2,
        violation_count=1,
        blocked_until=500.0,
        last_attempt_at=2.0,
    )

    attempt_store.save("login", "u1", record)

    assert kv.keys() == ["rate_limit:login:u1"]
    assert attempt_store.load("login", "u1") == record


def test_remove(attempt_store: AttemptStore) -> None:
    attempt_store.save("login", "u1", AttemptRecord())

    attempt_store.remove("login", "u1")

    assert attempt_store.load("login", "u1") is None


@pytest.mark.parametrize(
    "raw",
    [
        "not-json",
        {"timestamps": "yesterday"},
        {"consecutive_failures": -3},
        ["a", "list"],
        42,
    ],
)
def test_corrupt_value_fails_open(
    raw, attempt_store: AttemptStore, kv: InMemoryKeyValueStore, caplog: pytest.LogCaptureFixture
) -> None:
    kv.set("rate_limit:login:u1", raw)

    with caplog.at_level(logging.WARNING, logger="abuse_guard.rate_limit.store"):
        assert attempt_store.load("login", "u1") is None

    assert any(r.getMessage() == "rate_limit.corrupt_record" for r in caplog.records)


def test_json_string_value_is_decoded(attempt_store: AttemptStore, kv: InMemoryKeyValueStore) -> None:
    kv.set("rate_limit:login:u1", '{"consecutive_failures": 2, "timestamps": [5.0, 6.0]}')

    record = attempt_store.load("login", "u1")

    assert record is not None
    assert record.consecutive_failures == 2


def test_identifier_with_separator_round_trips(attempt_store: AttemptStore) -> None:
    attempt_store.save("login", "tenant:42", AttemptRecord(violation_count=1))

    assert list(attempt_store.iter_records()) == [
        ("login", "tenant:42", AttemptRecord(violation_count=1))
    ]


def test_endpoint_with_separator_is_rejected(attempt_store: AttemptStore) -> None:
    with pytest.raises(ValueError):
        attempt_store.build_key("bad:endpoint", "u1")


def test_iter_records_skips_foreign_and_corrupt_keys(
    attempt_store: AttemptStore, kv: InMemoryKeyValueStore
) -> None:
    attempt_store.save("login", "u1", AttemptRecord())
    kv.set("session:abc", {"token": "x"})
    kv.set("rate_limit:broken", {})
    kv.set("rate_limit:signup:u2", {"violation_count": "many"})

    assert [(e, i) for e, i, _ in attempt_store.iter_records()] == [("login", "u1")]


def test_custom_prefix(kv: InMemoryKeyValueStore) -> None:
    store = AttemptStore(kv, prefix="tenant-a/")
    store.save("login", "u1", AttemptRecord())

    assert kv.keys() == ["tenant-a/login:u1"]
    assert store.parse_key("tenant-a/login:u1") == ("login", "u1")
    assert store.parse_key("rate_limit:login:u1") is None


def test_purge_stale(attempt_store: AttemptStore) -> None:
    now = 10_000.0
    attempt_store.save("login", "idle", AttemptRecord(last_attempt_at=now - 5_000))
    attempt_store.save("login", "recent", AttemptRecord(last_attempt_at=now - 10))
    attempt_store.save(
        "login", "blocked", AttemptRecord(last_attempt_at=now - 5_000, blocked_until=now + 60)
    )
    attempt_store.save("login", "empty", AttemptRecord())

    removed = attempt_store.purge_stale(now, max_idle_seconds=1_000)

    assert removed == 2
    remaining = sorted(identifier for _, identifier, _ in attempt_store.iter_records())
    assert remaining == ["blocked", "recent"]
