"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Both collaborators signal failure only through core/errors.py exceptions
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core functions that consume their results are never async themselves —
      the services layer orchestrates the async calls around the pure logic
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from route_guard.core.domain_types import UserId
from route_guard.core.guard_state import SessionCredentials, SessionUser


class SessionBackend(Protocol):
    """Contract for the auth/session service — implemented by shell.

    Both methods raise SessionBackendError for every failure, including
    transport failures (code network_error / request_timeout).
    """
    async def get_identity(self, credentials: SessionCredentials) -> SessionUser: ...
    async def refresh(self, credentials: SessionCredentials) -> SessionCredentials: ...


# Profile columns the status provider reads
PRIMARY_COLUMNS = (
    "role",
    "account_role",
    "onboarding_complete",
    "onboarding_completed_at",
    "onboarding_step",
    "interests_count",
    "subcategories_count",
    "dealbreakers_count",
)
# Columns that predate onboarding_completed_at; safe while a migration propagates
REDUCED_COLUMNS = tuple(c for c in PRIMARY_COLUMNS if c != "onboarding_completed_at")


class ProfileStore(Protocol):
    """Contract for profile lookups — implemented by shell.

    Returns None when the profile row does not exist. Raises
    ProfileSchemaDriftError when a requested column is not visible yet, and
    ProfileStoreError for any other failure.
    """
    async def fetch_profile(
        self, user_id: UserId, columns: Sequence[str],
    ) -> Mapping[str, Any] | None: ...
