"""Guard Token Codec — tests for signing, expiry and tamper handling."""

import time

import jwt as pyjwt

from route_guard.core.guard_state import RedirectGuardState
from route_guard.infrastructure.guard_token import GuardTokenCodec

SECRET = "guard-test-secret-0123456789abcdef"


def _now_ms() -> int:
    return int(time.time() * 1000)


def test_encoded_state_decodes_back():
    codec = GuardTokenCodec(SECRET)
    now = _now_ms()
    state = RedirectGuardState(now, 2, "/profile", "/login")
    assert codec.decode(codec.encode(state, now)) == state


def test_claims_use_compact_names():
    codec = GuardTokenCodec(SECRET, ttl_ms=5000)
    now = _now_ms()
    token = codec.encode(RedirectGuardState(now, 1), now)
    claims = pyjwt.decode(token, SECRET, algorithms=["HS256"])
    assert claims["t"] == now
    assert claims["n"] == 1
    assert claims["exp"] == (now + 5000) // 1000
    assert "from" not in claims


def test_expired_token_is_absent():
    codec = GuardTokenCodec(SECRET)
    token = codec.encode(RedirectGuardState(0, 2), now_ms=0)
    assert codec.decode(token) is None


def test_token_signed_with_other_secret_is_absent():
    now = _now_ms()
    other = GuardTokenCodec("another-secret-0123456789abcdefgh")
    token = other.encode(RedirectGuardState(now, 2), now)
    assert GuardTokenCodec(SECRET).decode(token) is None


def test_garbage_and_missing_tokens_are_absent():
    codec = GuardTokenCodec(SECRET)
    assert codec.decode(None) is None
    assert codec.decode("") is None
    assert codec.decode("not-a-jwt") is None


def test_token_with_wrong_claim_types_is_absent():
    exp = int(time.time()) + 5
    token = pyjwt.encode({"t": "soon", "n": 1, "exp": exp}, SECRET, algorithm="HS256")
    assert GuardTokenCodec(SECRET).decode(token) is None


def test_token_missing_count_is_absent():
    exp = int(time.time()) + 5
    token = pyjwt.encode({"t": 1, "exp": exp}, SECRET, algorithm="HS256")
    assert GuardTokenCodec(SECRET).decode(token) is None


def test_max_age_rounds_up_to_whole_seconds():
    assert GuardTokenCodec(SECRET, ttl_ms=5000).max_age_seconds == 5
    assert GuardTokenCodec(SECRET, ttl_ms=1500).max_age_seconds == 2
