"""
Request Gate - secret key check and per-identity rate limiting

Every ingestion/query endpoint goes through RequestGate.authorize() before any
parameter is bound or any statement is sent to the database.

Secret policies:
- StaticSecret: one key for everybody (an empty key disables authentication)
- PerIdentitySecret: identity -> key; unknown identities are always denied
- PredicateSecret: a callable (provided_key, identity) -> bool

Rate limiting is a fixed window per identity: after an allowed request, the
same identity is refused until `window` milliseconds have passed since that
request. Denied requests do not extend the window.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from errors import AccessDeniedError, ConfigurationError, RateLimitedError

logger = logging.getLogger(__name__)

# rate_limit value meaning "no limit"
RATE_LIMIT_DISABLED = -1


@dataclass(frozen=True)
class StaticSecret:
    key: Optional[str] = None


@dataclass(frozen=True)
class PerIdentitySecret:
    keys: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PredicateSecret:
    predicate: Callable[[Optional[str], str], bool]


SecretPolicy = Union[StaticSecret, PerIdentitySecret, PredicateSecret]


def resolve_secret_policy(value: Any) -> SecretPolicy:
    """
    Build a policy from configuration: None/str -> StaticSecret,
    mapping -> PerIdentitySecret, callable -> PredicateSecret.
    """
    if isinstance(value, (StaticSecret, PerIdentitySecret, PredicateSecret)):
        policy = value
    elif value is None or isinstance(value, str):
        policy = StaticSecret(value or None)
    elif isinstance(value, Mapping):
        policy = PerIdentitySecret(dict(value))
    elif callable(value):
        policy = PredicateSecret(value)
    else:
        raise ConfigurationError(f"Unsupported secret policy: {type(value).__name__}")

    if isinstance(policy, StaticSecret) and not policy.key:
        logger.warning("⚠️  No secret key configured - authentication is disabled")
    return policy


def check_secret(policy: SecretPolicy, provided_key: Optional[str], identity: str) -> bool:
    """Check a provided key against the active policy"""
    if isinstance(policy, StaticSecret):
        if not policy.key:
            return True
        return provided_key == policy.key
    if isinstance(policy, PerIdentitySecret):
        expected = policy.keys.get(identity)
        if not expected:
            return False
        return provided_key == expected
    if isinstance(policy, PredicateSecret):
        return bool(policy.predicate(provided_key, identity))
    return False


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """
    Fixed-window rate limiter keyed by identity.

    Stale entries are swept on every check, so memory is bounded by the number
    of identities seen within one window.
    """

    def __init__(self, window: float, clock: Callable[[], float] = _monotonic_ms):
        self.window = window
        self._clock = clock
        self._last_access: dict[str, float] = {}

    @property
    def enabled(self) -> bool:
        return self.window > 0

    def __len__(self) -> int:
        return len(self._last_access)

    def check_and_stamp(self, identity: str) -> float:
        """
        Returns:
            Remaining wait in milliseconds; 0 means the request is allowed and
            the identity has been stamped with the current time
        """
        if not self.enabled:
            return 0

        now = self._clock()
        stale = [key for key, stamp in self._last_access.items() if now - stamp > self.window]
        for key in stale:
            del self._last_access[key]

        stamp = self._last_access.get(identity)
        if stamp is not None:
            elapsed = now - stamp
            if elapsed < self.window:
                return self.window - elapsed

        self._last_access[identity] = now
        return 0


class RequestGate:
    """
    Owns the active secret policy and the rate limiter for one gateway.

    One instance is built per Gateway and shared by all route handlers.
    """

    def __init__(
        self,
        secret: Any = None,
        rate_limit: float = RATE_LIMIT_DISABLED,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self._policy = resolve_secret_policy(secret)
        self._limiter = RateLimiter(rate_limit, clock)

    @property
    def policy(self) -> SecretPolicy:
        return self._policy

    @property
    def rate_limit(self) -> float:
        return self._limiter.window

    def set_secret(self, secret: Any):
        """Replace the active secret policy"""
        self._policy = resolve_secret_policy(secret)
        logger.info(f"Secret policy replaced ({type(self._policy).__name__})")

    def check_secret(self, provided_key: Optional[str], identity: str) -> bool:
        return check_secret(self._policy, provided_key, identity)

    def check_rate_limit(self, identity: str) -> float:
        return self._limiter.check_and_stamp(identity)

    def authorize(self, identity: str, provided_key: Optional[str]):
        """
        Run the secret check, then the rate limiter.

        Raises:
            AccessDeniedError: the key does not satisfy the policy
            RateLimitedError: the identity is inside its window
        """
        if not self.check_secret(provided_key, identity):
            logger.info(f"Access denied for {identity}")
            raise AccessDeniedError(identity)

        remaining = self.check_rate_limit(identity)
        if remaining:
            logger.debug(f"Rate limited {identity} for another {remaining:.0f}ms")
            raise RateLimitedError(identity, remaining)
