"""Domain Types — rich types that replace bare primitives across the guard.

Invariants:
    - UserId wraps the auth backend's principal id — never a bare str in domain logic
    - RouteCategory has exactly 7 members; CATEGORY_PRECEDENCE orders all of them
    - Role has exactly 3 members; storage strings reach Role only via normalize_role
    - OnboardingStep order is the order a user walks through setup
    - All valid states encoded as Enums — no raw string matching in the engine

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON/log fields without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)


# ─── Enums ───────────────────────────────────────────────────────

class RouteCategory(str, Enum):
    """Access-control classification of a request path."""
    PUBLIC = "public"
    PROTECTED = "protected"
    ONBOARDING = "onboarding"
    AUTH_PAGE = "auth_page"
    PASSWORD_RESET = "password_reset"
    BUSINESS_RESTRICTED = "business_restricted"
    ADMIN_RESTRICTED = "admin_restricted"


# Tie-break order when equally specific patterns from different tables match.
CATEGORY_PRECEDENCE: tuple[RouteCategory, ...] = (
    RouteCategory.PASSWORD_RESET,
    RouteCategory.AUTH_PAGE,
    RouteCategory.ADMIN_RESTRICTED,
    RouteCategory.BUSINESS_RESTRICTED,
    RouteCategory.ONBOARDING,
    RouteCategory.PROTECTED,
    RouteCategory.PUBLIC,
)

RESTRICTED_CATEGORIES: frozenset[RouteCategory] = frozenset({
    RouteCategory.PROTECTED,
    RouteCategory.ONBOARDING,
    RouteCategory.BUSINESS_RESTRICTED,
    RouteCategory.ADMIN_RESTRICTED,
})


class Role(str, Enum):
    """Account role after normalization."""
    USER = "user"
    BUSINESS_OWNER = "business_owner"
    ADMIN = "admin"


class ErrorClass(str, Enum):
    """Failure taxonomy. The first three classify identity; PROFILE_UNKNOWN
    classifies a profile lookup that could not produce an answer."""
    EXPECTED_ABSENT = "expected_absent"
    TRANSIENT = "transient"
    FATAL = "fatal"
    PROFILE_UNKNOWN = "profile_unknown"


class AuthErrorSignature(str, Enum):
    """What a session backend error message/code looks like."""
    EXPECTED_ABSENT = "expected_absent"
    NETWORK = "network"
    FATAL = "fatal"
    REFRESHABLE = "refreshable"
    UNKNOWN = "unknown"


class OnboardingStep(str, Enum):
    """Onboarding steps in walk order."""
    INTERESTS = "interests"
    SUBCATEGORIES = "subcategories"
    DEAL_BREAKERS = "deal_breakers"
    COMPLETE = "complete"


ONBOARDING_STEP_ORDER: tuple[OnboardingStep, ...] = (
    OnboardingStep.INTERESTS,
    OnboardingStep.SUBCATEGORIES,
    OnboardingStep.DEAL_BREAKERS,
    OnboardingStep.COMPLETE,
)


class DecisionKind(str, Enum):
    """Outcome of one guard decision."""
    ALLOW = "allow"
    REDIRECT = "redirect"
    REWRITE = "rewrite"


class GuardStateAction(str, Enum):
    """What the transport layer does with the client-held guard token."""
    SET = "set"
    CLEAR = "clear"
    KEEP = "keep"
