"""Guard Values — request-scoped value objects flowing through the decision pipeline.

Invariants:
    - All values are frozen: produced once per request, never mutated
    - Identity.present=False always carries an error_class; present=True never does
    - ProfileStatus.known=False is distinct from onboarding_complete=False
    - Decision.target is set for REDIRECT/REWRITE and None for ALLOW
    - RedirectGuardState is advisory (loop detection only), never used for authorization

Design Decisions:
    - Frozen dataclasses over Pydantic: pure core, no validation cost per request
    - Named constructors (Identity.absent, ProfileStatus.unknown, Decision.redirect)
      keep the invariants in one place instead of at every call site
"""

from dataclasses import dataclass

from route_guard.core.domain_types import (
    DecisionKind, ErrorClass, GuardStateAction, OnboardingStep, Role, UserId,
)


# ─── Session Material ───────────────────────────────────────────

@dataclass(frozen=True)
class SessionCredentials:
    """Opaque session tokens carried by the client."""
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None  # unix seconds, when the backend reports it

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token


@dataclass(frozen=True)
class SessionUser:
    """Principal returned by a successful SessionBackend.get_identity call."""
    user_id: UserId
    email_verified: bool
    expires_at: int | None = None  # access token expiry, unix seconds


# ─── Identity ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """Resolved identity for the current request."""
    present: bool
    user_id: UserId | None = None
    email_verified: bool = False
    error_class: ErrorClass | None = None
    refreshed_credentials: SessionCredentials | None = None

    @classmethod
    def absent(cls, error_class: ErrorClass) -> "Identity":
        return cls(present=False, error_class=error_class)

    @classmethod
    def of(
        cls,
        user: SessionUser,
        refreshed_credentials: SessionCredentials | None = None,
    ) -> "Identity":
        return cls(
            present=True,
            user_id=user.user_id,
            email_verified=user.email_verified,
            refreshed_credentials=refreshed_credentials,
        )

    @property
    def clear_credentials(self) -> bool:
        """Fatal identity: the client's session cookies must be dropped."""
        return self.error_class is ErrorClass.FATAL

    @property
    def verified(self) -> bool:
        return self.present and self.email_verified


# ─── Profile Status ─────────────────────────────────────────────

@dataclass(frozen=True)
class ProfileStatus:
    """Role + onboarding snapshot for a resolved identity."""
    known: bool
    role: Role = Role.USER
    onboarding_complete: bool = False
    onboarding_step: OnboardingStep | None = None
    interests_count: int = 0
    subcategories_count: int = 0
    dealbreakers_count: int = 0

    @classmethod
    def unknown(cls) -> "ProfileStatus":
        return cls(known=False)


# ─── Decision ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Decision:
    """One guard outcome. reason is a stable rule id for logs and tests."""
    kind: DecisionKind
    target: str | None = None
    reason: str = ""

    @classmethod
    def allow(cls, reason: str) -> "Decision":
        return cls(DecisionKind.ALLOW, None, reason)

    @classmethod
    def redirect(cls, target: str, reason: str) -> "Decision":
        return cls(DecisionKind.REDIRECT, target, reason)

    @classmethod
    def rewrite(cls, target: str, reason: str) -> "Decision":
        return cls(DecisionKind.REWRITE, target, reason)

    @property
    def is_redirect(self) -> bool:
        return self.kind is DecisionKind.REDIRECT


# ─── Loop Guard ─────────────────────────────────────────────────

@dataclass(frozen=True)
class RedirectGuardState:
    """Client-held redirect counter."""
    window_start_ms: int
    count: int
    last_from: str | None = None
    last_to: str | None = None


@dataclass(frozen=True)
class LoopGuardResult:
    """Final decision plus what to do with the guard token."""
    decision: Decision
    action: GuardStateAction
    state: RedirectGuardState | None = None
