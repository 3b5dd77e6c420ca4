"""Failure Classification — maps raw backend error signatures onto the guard's taxonomy.

Invariants:
    - Pure string/number inspection: no exceptions raised, no IO
    - An expired access token is REFRESHABLE even when reported as bad_jwt:
      expiry is the normal end of a token, not a malformed claim
    - Otherwise FATAL is checked before REFRESHABLE before NETWORK before
      EXPECTED_ABSENT: a message naming a vanished principal is fatal even if it
      also says "fetch"
    - HTTP 5xx and 429 are NETWORK regardless of message
    - Anything unrecognized is UNKNOWN; the caller decides how to degrade

Design Decisions:
    - Substring signatures over backend-specific exception classes: the auth
      server reports most failures as JSON {code, msg}, and transport layers
      reword them, so lowercase substring matching is the stable contract
"""

import re
from collections.abc import Sequence

from route_guard.core.domain_types import AuthErrorSignature

FATAL_MESSAGES = (
    "user from sub claim",
    "jwt does not exist",
    "user does not exist",
    "bad_jwt",
    "invalid claim",
)
FATAL_CODES = frozenset({"user_not_found", "bad_jwt"})

EXPIRED_MESSAGES = ("token is expired", "jwt expired")

REFRESH_MESSAGES = ("refresh token", "invalid refresh token")
REFRESH_CODES = frozenset({"refresh_token_not_found", "session_expired"})

NETWORK_MESSAGES = ("fetch", "network", "connection", "timeout", "timed out")
NETWORK_CODES = frozenset({"network_error", "request_timeout"})

ABSENT_MESSAGES = ("session missing", "auth session missing", "no authorization")
ABSENT_CODES = frozenset({"session_not_found", "no_authorization"})

SCHEMA_DRIFT_MESSAGES = ("schema cache", "does not exist", "no such column", "unknown column")


def classify_auth_error(
    message: str | None,
    code: str | None = None,
    status_code: int | None = None,
) -> AuthErrorSignature:
    """Classify a session backend failure by message, backend code, and HTTP status."""
    msg = (message or "").lower()
    err_code = (code or "").lower()

    if any(m in msg for m in EXPIRED_MESSAGES):
        return AuthErrorSignature.REFRESHABLE
    if err_code in FATAL_CODES or any(m in msg for m in FATAL_MESSAGES):
        return AuthErrorSignature.FATAL
    if err_code in REFRESH_CODES or any(m in msg for m in REFRESH_MESSAGES):
        return AuthErrorSignature.REFRESHABLE
    if status_code is not None and (status_code >= 500 or status_code == 429):
        return AuthErrorSignature.NETWORK
    if err_code in NETWORK_CODES or any(m in msg for m in NETWORK_MESSAGES):
        return AuthErrorSignature.NETWORK
    if err_code in ABSENT_CODES or any(m in msg for m in ABSENT_MESSAGES):
        return AuthErrorSignature.EXPECTED_ABSENT
    return AuthErrorSignature.UNKNOWN


def is_schema_drift_error(message: str | None, column: str | None = None) -> bool:
    """True when a query failed because a column is not visible yet.

    With column given, the message must also name it — a missing *table* or an
    unrelated column is a real failure, not propagation lag.
    """
    msg = (message or "").lower()
    if "column" not in msg and "schema cache" not in msg:
        return False
    if not any(m in msg for m in SCHEMA_DRIFT_MESSAGES):
        return False
    return column is None or _names_identifier(msg, column.lower())


def drifted_column(message: str | None, columns: Sequence[str]) -> str | None:
    """The first of columns named in a drift message, matched as a whole identifier."""
    msg = (message or "").lower()
    return next((c for c in columns if _names_identifier(msg, c.lower())), None)


def _names_identifier(message: str, name: str) -> bool:
    # onboarding_complete must not match inside onboarding_completed_at
    return re.search(rf"\b{re.escape(name)}\b", message) is not None
