"""Test doubles for the pipeline's two IO boundaries.

FakeSessionBackend replays scripted outcomes per call: a SessionUser /
SessionCredentials is returned, an Exception is raised. FakeProfileStore
serves rows by user id and can be told to fail on specific column sets.
"""

from route_guard.core.domain_types import UserId
from route_guard.core.errors import ProfileSchemaDriftError, SessionBackendError
from route_guard.core.guard_state import SessionCredentials, SessionUser


def user(
    user_id: str = "u-1", verified: bool = True, expires_at: int | None = None,
) -> SessionUser:
    return SessionUser(UserId(user_id), verified, expires_at)


def backend_error(message: str, code: str | None = None, status: int | None = None):
    return SessionBackendError(message, error_code=code, status_code=status)


class FakeSessionBackend:
    def __init__(self, identities=(), refreshes=()):
        self.identities = list(identities)
        self.refreshes = list(refreshes)
        self.identity_calls: list[SessionCredentials] = []
        self.refresh_calls: list[SessionCredentials] = []

    async def get_identity(self, credentials: SessionCredentials) -> SessionUser:
        self.identity_calls.append(credentials)
        outcome = self.identities.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def refresh(self, credentials: SessionCredentials) -> SessionCredentials:
        self.refresh_calls.append(credentials)
        outcome = self.refreshes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeProfileStore:
    def __init__(self, rows=None, fail_on=None, error=None):
        self.rows = rows or {}
        self.fail_on = set(fail_on or ())  # column names that trigger drift
        self.error = error
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    async def fetch_profile(self, user_id, columns):
        self.calls.append((user_id, tuple(columns)))
        if self.error is not None:
            raise self.error
        missing = self.fail_on.intersection(columns)
        if missing:
            column = sorted(missing)[0]
            raise ProfileSchemaDriftError(
                f"column profiles.{column} does not exist", column=column,
            )
        row = self.rows.get(user_id)
        if row is None:
            return None
        return {k: v for k, v in row.items() if k in columns}
