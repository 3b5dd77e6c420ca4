"""Guard Token Codec — signs and verifies the client-held redirect counter.

Invariants:
    - Tokens are HS256 JWTs with claims {t, n, from?, to?, exp}
    - exp = issue time + ttl: a token never outlives its window
    - decode() never raises: invalid, expired, tampered or malformed → None

Design Decisions:
    - PyJWT over a hand-rolled HMAC: expiry and signature checks are the library's
      job and the same dependency reads access-token expiry elsewhere
    - Missing/garbled state degrades to "no state", which can only make the loop
      guard more permissive for one extra hop, never deny access
"""

import logging

import jwt as pyjwt

from route_guard.core.guard_state import RedirectGuardState

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class GuardTokenCodec:
    """Encode/decode RedirectGuardState as a short-lived signed token."""

    def __init__(self, secret: str, ttl_ms: int = 5000):
        self.secret = secret
        self.ttl_ms = ttl_ms

    @property
    def max_age_seconds(self) -> int:
        return max(1, -(-self.ttl_ms // 1000))

    def encode(self, state: RedirectGuardState, now_ms: int) -> str:
        claims = {
            "t": state.window_start_ms,
            "n": state.count,
            "exp": (now_ms + self.ttl_ms) // 1000,
        }
        if state.last_from is not None:
            claims["from"] = state.last_from
        if state.last_to is not None:
            claims["to"] = state.last_to
        return pyjwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def decode(self, token: str | None) -> RedirectGuardState | None:
        if not token:
            return None
        try:
            payload = pyjwt.decode(
                token, self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["t", "n", "exp"]},
            )
        except pyjwt.PyJWTError as e:
            logger.debug(f"Guard token rejected: {e}")
            return None

        start, count = payload.get("t"), payload.get("n")
        if not _is_int(start) or not _is_int(count) or count < 0:
            return None
        return RedirectGuardState(
            window_start_ms=start,
            count=count,
            last_from=_str_or_none(payload.get("from")),
            last_to=_str_or_none(payload.get("to")),
        )


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _str_or_none(value) -> str | None:
    return value if isinstance(value, str) else None
