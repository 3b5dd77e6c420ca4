"""Profile Store — SQLAlchemy lookup of the role/onboarding columns for one user.

Invariants:
    - Selects only the requested columns, in one round trip, by primary key
    - Missing row → None (not an error)
    - A failure naming a missing column or the schema cache → ProfileSchemaDriftError;
      any other database failure → ProfileStoreError
    - Unknown column names are rejected before any IO (ProfileStoreError)

Design Decisions:
    - Column names resolved against the Profile table metadata, so the query is
      built from SQLAlchemy column objects rather than interpolated strings
    - Drift detection delegated to core/classify_failure.is_schema_drift_error:
      the store only reports, the status provider decides whether to retry
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from route_guard.core.classify_failure import drifted_column, is_schema_drift_error
from route_guard.core.domain_types import UserId
from route_guard.core.errors import ProfileSchemaDriftError, ProfileStoreError
from route_guard.infrastructure.database import DatabaseSessionManager
from route_guard.models.profile import Profile

logger = logging.getLogger(__name__)


class SqlProfileStore:
    """ProfileStore backed by the profiles table."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    async def fetch_profile(
        self, user_id: UserId, columns: Sequence[str],
    ) -> Mapping[str, Any] | None:
        table = Profile.__table__
        unknown = [c for c in columns if c not in table.c]
        if unknown:
            raise ProfileStoreError(f"unknown profile columns: {', '.join(unknown)}")

        stmt = select(*(table.c[name] for name in columns)).where(
            table.c.user_id == user_id,
        )
        async with self.db.session() as session:
            try:
                result = await session.execute(stmt)
                row = result.mappings().first()
            except SQLAlchemyError as e:
                raise _translate(e, columns) from e
        return dict(row) if row is not None else None


def _translate(error: SQLAlchemyError, columns: Sequence[str]) -> ProfileStoreError:
    message = str(getattr(error, "orig", None) or error)
    if is_schema_drift_error(message):
        column = drifted_column(message, columns)
        logger.warning(
            f"Profile schema drift: {message}",
            extra={"error_code": "PROFILE_SCHEMA_DRIFT"},
        )
        return ProfileSchemaDriftError(message, column=column)
    return ProfileStoreError(message)
