"""ORM Models — SQLAlchemy declarative models read by the guard.

Invariants:
    - All models inherit from Base (db/base.py)
    - The guard never writes these tables; other services own the rows

Design Decisions:
    - All models imported here so Alembic and tests see complete metadata
"""

from route_guard.models.profile import Profile  # noqa: F401
