"""Profile Status Provider — role and onboarding snapshot with fail-open degradation.

Invariants:
    - fetch() never raises: missing row, store failure or timeout → ProfileStatus.unknown()
    - Never synthesizes an "incomplete" status: unknown is reported as unknown
    - Exactly one retry, with the reduced column set, and only on schema drift

Design Decisions:
    - Timeout covers both attempts together: one limit per request, not per query
    - Role/step normalization lives in core/normalize_profile.py (pure, tested alone)
"""

import asyncio
import logging

from route_guard.core.domain_types import ErrorClass, UserId
from route_guard.core.errors import ProfileSchemaDriftError, ProfileStoreError
from route_guard.core.guard_state import ProfileStatus
from route_guard.core.normalize_profile import profile_status_from_row
from route_guard.core.repository_protocols import (
    PRIMARY_COLUMNS, REDUCED_COLUMNS, ProfileStore,
)

logger = logging.getLogger(__name__)


class ProfileStatusProvider:
    """Fetch ProfileStatus for a user id from a ProfileStore."""

    def __init__(self, store: ProfileStore, timeout_seconds: float = 3.0):
        self.store = store
        self.timeout_seconds = timeout_seconds

    async def fetch(self, user_id: UserId) -> ProfileStatus:
        try:
            row = await asyncio.wait_for(self._query(user_id), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Profile lookup timed out after {self.timeout_seconds}s",
                extra={"user_id": user_id, "error_class": ErrorClass.PROFILE_UNKNOWN.value},
            )
            return ProfileStatus.unknown()
        except ProfileStoreError as e:
            logger.warning(
                f"Profile lookup failed: {e.detail}",
                extra={"user_id": user_id, "error_code": e.code, "error_class": ErrorClass.PROFILE_UNKNOWN.value},
            )
            return ProfileStatus.unknown()
        except Exception as e:
            logger.error(
                f"Unexpected profile lookup error: {e}",
                exc_info=True, extra={"user_id": user_id},
            )
            return ProfileStatus.unknown()

        if row is None:
            logger.info("Profile row missing", extra={"user_id": user_id, "error_class": ErrorClass.PROFILE_UNKNOWN.value})
            return ProfileStatus.unknown()
        return profile_status_from_row(row)

    async def _query(self, user_id: UserId):
        try:
            return await self.store.fetch_profile(user_id, PRIMARY_COLUMNS)
        except ProfileSchemaDriftError as e:
            logger.warning(
                f"Profile schema drift ({e.column or 'unknown column'}), retrying reduced query",
                extra={"user_id": user_id, "error_code": e.code},
            )
            return await self.store.fetch_profile(user_id, REDUCED_COLUMNS)
