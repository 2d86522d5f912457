"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any project import so the global
settings object is built from test values, never from a local .env file.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("RATE_LIMIT_STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest

from abuse_guard.adapters.storage.in_memory import InMemoryKeyValueStore
from abuse_guard.core.security_logger import SecurityLogger
from abuse_guard.rate_limit.configs import ConfigRegistry
from abuse_guard.rate_limit.engine import RateLimitEngine
from abuse_guard.rate_limit.store import AttemptStore
from abuse_guard.rate_limit.violations import ViolationReporter


class FakeClock:
    """Deterministic clock used to drive windows and block expiry."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def attempt_store(kv: InMemoryKeyValueStore) -> AttemptStore:
    return AttemptStore(kv)


@pytest.fixture
def security_logger() -> Mock:
    return Mock(spec=SecurityLogger)


@pytest.fixture
def engine(attempt_store: AttemptStore, clock: FakeClock, security_logger: Mock) -> RateLimitEngine:
    return RateLimitEngine(
        ConfigRegistry(),
        attempt_store,
        clock=clock,
        security_logger=security_logger,
    )


@pytest.fixture
def reporter(attempt_store: AttemptStore, clock: FakeClock) -> ViolationReporter:
    return ViolationReporter(attempt_store, clock=clock)
