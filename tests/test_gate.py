"""
Tests for the request gate: secret policies and the fixed-window rate limiter
"""

import pytest

from errors import AccessDeniedError, ConfigurationError, RateLimitedError
from gate import (
    RATE_LIMIT_DISABLED, StaticSecret, PerIdentitySecret, PredicateSecret,
    RateLimiter, RequestGate, check_secret, resolve_secret_policy,
)
from tests.gateway_test_utils import FakeClock


class TestSecretPolicies:
    """Secret key checks"""

    def test_policy_resolution(self):
        assert resolve_secret_policy(None) == StaticSecret(None)
        assert resolve_secret_policy("") == StaticSecret(None)
        assert resolve_secret_policy("k") == StaticSecret("k")
        assert isinstance(resolve_secret_policy({"a": "k"}), PerIdentitySecret)
        assert isinstance(resolve_secret_policy(lambda key, identity: True), PredicateSecret)

    def test_unsupported_policy(self):
        with pytest.raises(ConfigurationError):
            resolve_secret_policy(42)

    def test_empty_static_secret_allows_everyone(self):
        assert check_secret(StaticSecret(None), None, "10.0.0.1")
        assert check_secret(StaticSecret(None), "anything", "10.0.0.1")

    def test_static_secret(self):
        policy = StaticSecret("k")
        assert check_secret(policy, "k", "10.0.0.1")
        assert not check_secret(policy, "wrong", "10.0.0.1")
        assert not check_secret(policy, None, "10.0.0.1")

    def test_per_identity_secret(self):
        policy = PerIdentitySecret({"10.0.0.1": "a", "10.0.0.2": "b"})
        assert check_secret(policy, "a", "10.0.0.1")
        assert not check_secret(policy, "b", "10.0.0.1")

    def test_per_identity_unknown_identity_denied(self):
        policy = PerIdentitySecret({"10.0.0.1": "a"})
        assert not check_secret(policy, "a", "10.0.0.9")
        assert not check_secret(policy, None, "10.0.0.9")

    def test_predicate_receives_identity(self):
        calls = []

        def predicate(key, identity):
            calls.append((key, identity))
            return identity == "10.0.0.1"

        policy = PredicateSecret(predicate)
        assert check_secret(policy, "k", "10.0.0.1")
        assert not check_secret(policy, "k", "10.0.0.2")
        assert calls == [("k", "10.0.0.1"), ("k", "10.0.0.2")]


class TestRateLimiter:
    """Fixed-window limiting per identity"""

    def test_fixed_window(self):
        clock = FakeClock()
        limiter = RateLimiter(1000, clock)

        assert limiter.check_and_stamp("a") == 0
        clock.advance(500)
        assert limiter.check_and_stamp("a") == 500
        clock.advance(1000)
        assert limiter.check_and_stamp("a") == 0
        # The allowed request at t=1500 restarted the window
        clock.advance(100)
        assert limiter.check_and_stamp("a") == 900

    def test_denied_request_does_not_extend_window(self):
        clock = FakeClock()
        limiter = RateLimiter(1000, clock)

        limiter.check_and_stamp("a")
        clock.advance(900)
        assert limiter.check_and_stamp("a") == 100
        clock.advance(100)
        assert limiter.check_and_stamp("a") == 0

    def test_identities_are_independent(self):
        clock = FakeClock()
        limiter = RateLimiter(1000, clock)

        assert limiter.check_and_stamp("a") == 0
        assert limiter.check_and_stamp("b") == 0
        assert limiter.check_and_stamp("a") == 1000

    def test_stale_entries_swept(self):
        clock = FakeClock()
        limiter = RateLimiter(1000, clock)

        limiter.check_and_stamp("a")
        clock.advance(600)
        limiter.check_and_stamp("b")
        assert len(limiter) == 2

        clock.advance(600)
        assert limiter.check_and_stamp("b") == 400
        assert len(limiter) == 1

    def test_disabled(self):
        limiter = RateLimiter(RATE_LIMIT_DISABLED, FakeClock())
        assert not limiter.enabled
        for _ in range(5):
            assert limiter.check_and_stamp("a") == 0
        assert len(limiter) == 0


class TestRequestGate:
    """Secret first, then rate limit"""

    def test_authorize_allows(self):
        gate = RequestGate("k", 1000, FakeClock())
        gate.authorize("10.0.0.1", "k")

    def test_wrong_key_denied(self):
        gate = RequestGate("k")
        with pytest.raises(AccessDeniedError):
            gate.authorize("10.0.0.1", "nope")

    def test_denied_request_not_stamped(self):
        gate = RequestGate("k", 1000, FakeClock())
        with pytest.raises(AccessDeniedError):
            gate.authorize("10.0.0.1", "nope")
        gate.authorize("10.0.0.1", "k")

    def test_rate_limited_carries_remaining(self):
        clock = FakeClock()
        gate = RequestGate(None, 1000, clock)
        gate.authorize("10.0.0.1", None)
        clock.advance(250)
        with pytest.raises(RateLimitedError) as exc_info:
            gate.authorize("10.0.0.1", None)
        assert exc_info.value.remaining == 750

    def test_set_secret_replaces_policy(self):
        gate = RequestGate("old")
        gate.set_secret({"10.0.0.1": "new"})
        assert isinstance(gate.policy, PerIdentitySecret)
        assert gate.check_secret("new", "10.0.0.1")
        assert not gate.check_secret("old", "10.0.0.1")

    def test_rate_limit_property(self):
        assert RequestGate().rate_limit == RATE_LIMIT_DISABLED
        assert RequestGate(rate_limit=2000).rate_limit == 2000
