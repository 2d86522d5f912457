"""Per-endpoint rate limit policies.

The compiled-in table is immutable. Deployments adjust individual fields
through RATE_LIMIT_OVERRIDES, which produces a new registry instead of
mutating the shared defaults.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from abuse_guard.core.errors import ConfigurationError, UnknownEndpointError

MINUTE = 60.0
HOUR = 60 * MINUTE
DEFAULT_MAX_BLOCK_SECONDS = 24 * HOUR


@dataclass(frozen=True)
class RateLimitConfig:
    """Limiting policy for one endpoint.

    Attributes:
        endpoint: Registry key (e.g. ``login``).
        max_attempts: Attempts allowed inside one window before blocking.
        window_seconds: Sliding window length.
        base_block_seconds: Duration of the first block.
        max_block_seconds: Upper bound for escalated blocks.
        use_exponential_backoff: Double the block on each new violation.
    """

    endpoint: str
    max_attempts: int
    window_seconds: float
    base_block_seconds: float
    max_block_seconds: float = DEFAULT_MAX_BLOCK_SECONDS
    use_exponential_backoff: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.endpoint, str) or not self.endpoint:
            self._invalid("endpoint", "endpoint must be a non-empty string")
        if ":" in self.endpoint:
            self._invalid("endpoint", "endpoint must not contain ':'")
        if not isinstance(self.max_attempts, int) or isinstance(self.max_attempts, bool):
            self._invalid("max_attempts", "max_attempts must be an integer")
        for field in ("window_seconds", "base_block_seconds", "max_block_seconds"):
            value = getattr(self, field)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                self._invalid(field, f"{field} must be a number")
        if not isinstance(self.use_exponential_backoff, bool):
            self._invalid("use_exponential_backoff", "use_exponential_backoff must be true or false")
        if self.max_attempts < 1:
            self._invalid("max_attempts", "max_attempts must be >= 1")
        if self.window_seconds <= 0:
            self._invalid("window_seconds", "window_seconds must be > 0")
        if self.base_block_seconds <= 0:
            self._invalid("base_block_seconds", "base_block_seconds must be > 0")
        if self.max_block_seconds < self.base_block_seconds:
            self._invalid(
                "max_block_seconds", "max_block_seconds must be >= base_block_seconds"
            )

    def _invalid(self, field: str, message: str) -> None:
        raise ConfigurationError(
            code="invalid_rate_limit_config",
            message=f"{self.endpoint or '<unnamed>'}: {message}",
            details={"endpoint": self.endpoint, "field": field},
        )

    def block_duration(self, violation_count: int) -> float:
        """Block length for the given (1-based) violation number."""

        if not self.use_exponential_backoff:
            return self.base_block_seconds
        exponent = max(violation_count, 1) - 1
        return min(self.base_block_seconds * 2**exponent, self.max_block_seconds)


def _policy(endpoint: str, **kwargs: Any) -> tuple[str, RateLimitConfig]:
    return endpoint, RateLimitConfig(endpoint=endpoint, **kwargs)


RATE_LIMIT_CONFIGS: Mapping[str, RateLimitConfig] = MappingProxyType(
    dict(
        [
            # Authentication: strict, escalating
            _policy("login", max_attempts=5, window_seconds=15 * MINUTE,
                    base_block_seconds=15 * MINUTE, use_exponential_backoff=True),
            _policy("signup", max_attempts=3, window_seconds=HOUR,
                    base_block_seconds=HOUR, use_exponential_backoff=True),
            _policy("passwordReset", max_attempts=3, window_seconds=HOUR,
                    base_block_seconds=HOUR),
            _policy("otpVerify", max_attempts=5, window_seconds=10 * MINUTE,
                    base_block_seconds=30 * MINUTE, use_exponential_backoff=True),
            # Resource mutations: moderate, fixed blocks
            _policy("createProject", max_attempts=10, window_seconds=MINUTE,
                    base_block_seconds=5 * MINUTE),
            _policy("updateProject", max_attempts=20, window_seconds=MINUTE,
                    base_block_seconds=3 * MINUTE),
            _policy("deleteProject", max_attempts=5, window_seconds=MINUTE,
                    base_block_seconds=5 * MINUTE),
            _policy("createApplication", max_attempts=5, window_seconds=5 * MINUTE,
                    base_block_seconds=10 * MINUTE),
            # Payments: very strict
            _policy("createPayment", max_attempts=3, window_seconds=5 * MINUTE,
                    base_block_seconds=30 * MINUTE, use_exponential_backoff=True),
            # Admin operations: lenient for review throughput
            _policy("adminVetting", max_attempts=30, window_seconds=MINUTE,
                    base_block_seconds=5 * MINUTE),
            _policy("adminBulk", max_attempts=5, window_seconds=5 * MINUTE,
                    base_block_seconds=10 * MINUTE),
        ]
    )
)


class ConfigRegistry:
    """Read-only lookup of policies by endpoint name."""

    def __init__(self, configs: Mapping[str, RateLimitConfig] = RATE_LIMIT_CONFIGS) -> None:
        self._configs: Mapping[str, RateLimitConfig] = MappingProxyType(dict(configs))

    def __contains__(self, endpoint: object) -> bool:
        return endpoint in self._configs

    def __len__(self) -> int:
        return len(self._configs)

    def get_config(self, endpoint: str) -> RateLimitConfig:
        """Return the policy for endpoint.

        Raises:
            UnknownEndpointError: If no policy is registered. Unknown endpoints
                are programmer errors and must not silently get unlimited
                attempts.
        """
        try:
            return self._configs[endpoint]
        except KeyError:
            raise UnknownEndpointError(endpoint, list(self._configs)) from None

    def endpoints(self) -> list[str]:
        return list(self._configs)

    def configs(self) -> Iterable[RateLimitConfig]:
        return self._configs.values()


_OVERRIDABLE_FIELDS = {
    field.name for field in dataclasses.fields(RateLimitConfig) if field.name != "endpoint"
}


def build_config_registry(
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
    *,
    max_block_seconds: float | None = None,
    base: Mapping[str, RateLimitConfig] = RATE_LIMIT_CONFIGS,
) -> ConfigRegistry:
    """Build a registry from the compiled table plus deployment overrides.

    Args:
        overrides: Mapping of endpoint name to field overrides.
        max_block_seconds: Optional global cap lowering every endpoint's
            max block duration (and base block, if it exceeds the cap).
        base: Table the overrides are applied to.

    Returns:
        ConfigRegistry: Registry holding the adjusted policies.

    Raises:
        UnknownEndpointError: If an override names an unregistered endpoint.
        ConfigurationError: If an override names an unknown field or yields an
            invalid policy.
    """
    configs = dict(base)

    for endpoint, fields in (overrides or {}).items():
        if endpoint not in configs:
            raise UnknownEndpointError(endpoint, list(configs))
        unknown_fields = set(fields) - _OVERRIDABLE_FIELDS
        if unknown_fields:
            raise ConfigurationError(
                code="invalid_rate_limit_override",
                message=(
                    f"{endpoint}: unknown override field(s) "
                    f"{', '.join(sorted(unknown_fields))}"
                ),
                details={"endpoint": endpoint, "field": sorted(unknown_fields)[0]},
            )
        configs[endpoint] = dataclasses.replace(configs[endpoint], **fields)

    if max_block_seconds is not None:
        for endpoint, config in configs.items():
            cap = min(config.max_block_seconds, max_block_seconds)
            configs[endpoint] = dataclasses.replace(
                config,
                base_block_seconds=min(config.base_block_seconds, cap),
                max_block_seconds=cap,
            )

    return ConfigRegistry(configs)
