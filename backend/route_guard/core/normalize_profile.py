"""Profile Normalization — turns a raw profile row into a ProfileStatus.

Invariants:
    - normalize_role is total: any input maps to exactly one Role, default USER
    - ADMIN only from the `role` column; account_role is an account mode, not a privilege
    - BUSINESS_OWNER when either role or account_role says business_owner
    - onboarding_complete is true if the flag is true or the completion timestamp is set
    - A row always yields known=True; absence of a row is the caller's concern

Design Decisions:
    - Strict mapping table over str.lower() == ... chains: one place to extend,
      and unknown values can never elevate privilege
"""

from collections.abc import Mapping
from typing import Any

from route_guard.core.domain_types import OnboardingStep, Role
from route_guard.core.guard_state import ProfileStatus

ROLE_MAP: dict[str, Role] = {
    "user": Role.USER,
    "business_owner": Role.BUSINESS_OWNER,
    "admin": Role.ADMIN,
}

STEP_MAP: dict[str, OnboardingStep] = {
    "interests": OnboardingStep.INTERESTS,
    "subcategories": OnboardingStep.SUBCATEGORIES,
    "deal_breakers": OnboardingStep.DEAL_BREAKERS,
    "deal-breakers": OnboardingStep.DEAL_BREAKERS,
    "dealbreakers": OnboardingStep.DEAL_BREAKERS,
    "complete": OnboardingStep.COMPLETE,
}


def normalize_role(value: object) -> Role:
    """Arbitrary storage value → Role. Unrecognized → USER."""
    if not isinstance(value, str):
        return Role.USER
    return ROLE_MAP.get(value.strip().lower(), Role.USER)


def resolve_role(role: object, account_role: object) -> Role:
    """Combine the profile's role and account_role columns."""
    primary = normalize_role(role)
    if primary is Role.ADMIN:
        return Role.ADMIN
    if Role.BUSINESS_OWNER in (primary, normalize_role(account_role)):
        return Role.BUSINESS_OWNER
    return Role.USER


def normalize_step(value: object) -> OnboardingStep | None:
    if not isinstance(value, str):
        return None
    return STEP_MAP.get(value.strip().lower())


def _count(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def profile_status_from_row(row: Mapping[str, Any]) -> ProfileStatus:
    """Build a known ProfileStatus from whichever columns the query returned."""
    completed = bool(row.get("onboarding_complete")) or (
        row.get("onboarding_completed_at") is not None
    )
    return ProfileStatus(
        known=True,
        role=resolve_role(row.get("role"), row.get("account_role")),
        onboarding_complete=completed,
        onboarding_step=normalize_step(row.get("onboarding_step")),
        interests_count=_count(row.get("interests_count")),
        subcategories_count=_count(row.get("subcategories_count")),
        dealbreakers_count=_count(row.get("dealbreakers_count")),
    )
