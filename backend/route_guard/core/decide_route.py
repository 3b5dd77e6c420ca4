"""Decision Engine — ordered, table-driven access rules over classified request state.

Invariants:
    - All functions are PURE: no IO, no async, no clock, no side effects
    - Each rule returns a Decision when it applies, None to fall through
    - RULES order is the precedence order; first Decision wins; fallback is ALLOW
    - Role is only trusted when ProfileStatus.known is True
    - An unknown profile is never redirected toward onboarding (fail-open)
    - Missing identity on a restricted route is never allowed (fail-closed)
    - The root path is resolved by the same role/onboarding rules, never on its own

Design Decisions:
    - Rule functions over one nested if-tree: each rule is unit-testable in isolation
      and the precedence is readable as a single tuple
    - Decision.reason carries the rule's stable id: logs and tests assert on it
      instead of re-deriving which branch fired
"""

from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlsplit

from route_guard.core.classify_route import normalize_path, path_matches
from route_guard.core.domain_types import (
    ONBOARDING_STEP_ORDER, RESTRICTED_CATEGORIES,
    OnboardingStep, Role, RouteCategory,
)
from route_guard.core.guard_state import Decision, Identity, ProfileStatus
from route_guard.core.route_config import RouteConfig

PRIVILEGED_CATEGORIES = frozenset({
    RouteCategory.ADMIN_RESTRICTED,
    RouteCategory.BUSINESS_RESTRICTED,
})


@dataclass(frozen=True)
class DecisionInput:
    """Everything a rule may look at. path is already normalized."""
    path: str
    category: RouteCategory
    identity: Identity
    profile: ProfileStatus
    config: RouteConfig
    referrer: str | None = None

    @property
    def is_root(self) -> bool:
        return self.path == self.config.root_path

    def on(self, route: str) -> bool:
        return path_matches(self.path, route)

    def on_any(self, routes: tuple[str, ...]) -> bool:
        return any(path_matches(self.path, r) for r in routes)

    @property
    def trusted_role(self) -> Role | None:
        """Role only when the identity is verified and the profile was read."""
        if not self.identity.verified or not self.profile.known:
            return None
        return self.profile.role


Rule = Callable[[DecisionInput], Decision | None]


# ─── Helpers ─────────────────────────────────────────────────────

def came_from_verification(ctx: DecisionInput) -> bool:
    """Referrer points at a page of the email verification flow."""
    if not ctx.referrer:
        return False
    referrer_path = normalize_path(urlsplit(ctx.referrer).path or "/")
    return any(path_matches(referrer_path, p) for p in ctx.config.verification_paths)


def current_step_path(ctx: DecisionInput) -> str:
    """Path of the step the user should be on; entry step when unknown."""
    step = ctx.profile.onboarding_step
    if step is None or step is OnboardingStep.COMPLETE:
        return ctx.config.onboarding_entry_path
    return ctx.config.step_path(step)


def requested_step_index(ctx: DecisionInput) -> int:
    """Walk-order index of the onboarding page requested; 0 for non-step pages."""
    for index, step in enumerate(ONBOARDING_STEP_ORDER):
        if ctx.on(ctx.config.step_path(step)):
            return index
    return 0


def current_step_index(ctx: DecisionInput) -> int:
    step = ctx.profile.onboarding_step
    return ONBOARDING_STEP_ORDER.index(step) if step else 0


def role_home(ctx: DecisionInput) -> str:
    """Landing page for a verified identity (used by auth pages)."""
    role = ctx.trusted_role
    if role is Role.ADMIN:
        return ctx.config.admin_home_path
    if role is Role.BUSINESS_OWNER:
        return ctx.config.business_home_path
    if ctx.profile.onboarding_complete:
        return ctx.config.profile_path
    return ctx.config.onboarding_entry_path


# ─── Rules (precedence order) ────────────────────────────────────

def rule_password_reset(ctx: DecisionInput) -> Decision | None:
    """Rule 1: password reset pages are reachable in every state."""
    if ctx.category is RouteCategory.PASSWORD_RESET:
        return Decision.allow("password_reset")
    return None


def rule_guest_auth_page(ctx: DecisionInput) -> Decision | None:
    """Rule 2: guests may render login/register/verify pages."""
    if ctx.category is RouteCategory.AUTH_PAGE and not ctx.identity.present:
        return Decision.allow("guest_auth_page")
    return None


def rule_guest(ctx: DecisionInput) -> Decision | None:
    """Rule 3: no identity (guest, transient or fatal failure)."""
    if ctx.identity.present:
        return None
    if ctx.is_root:
        return Decision.redirect(ctx.config.home_path, "root_guest")
    if ctx.category in RESTRICTED_CATEGORIES:
        if came_from_verification(ctx):
            return Decision.redirect(ctx.config.verify_email_path, "guest_from_verification")
        return Decision.redirect(ctx.config.login_path, "guest_on_restricted")
    alias = ctx.config.guest_rewrites.get(ctx.path)
    if alias:
        return Decision.rewrite(alias, "guest_landing_alias")
    return Decision.allow("guest_on_public")


def rule_unverified(ctx: DecisionInput) -> Decision | None:
    """Rule 4: signed in, email not verified yet."""
    if ctx.identity.email_verified:
        return None
    if ctx.category is RouteCategory.AUTH_PAGE:
        if ctx.on_any(ctx.config.verification_paths):
            return Decision.allow("unverified_on_verification")
        return Decision.redirect(ctx.config.verify_email_path, "unverified_on_auth_page")
    if ctx.is_root:
        return Decision.redirect(ctx.config.home_path, "root_unverified")
    if ctx.category in RESTRICTED_CATEGORIES:
        return Decision.redirect(ctx.config.verify_email_path, "unverified_on_restricted")
    return Decision.allow("unverified_on_public")


def rule_admin(ctx: DecisionInput) -> Decision | None:
    """Rule 5: admins live in the admin area."""
    if ctx.trusted_role is not Role.ADMIN:
        return None
    if ctx.category is RouteCategory.ADMIN_RESTRICTED:
        return Decision.allow("admin_on_admin")
    return Decision.redirect(ctx.config.admin_home_path, "admin_outside_admin")


def rule_business_owner(ctx: DecisionInput) -> Decision | None:
    """Rule 6: business accounts never see onboarding or personal discovery."""
    if ctx.trusted_role is not Role.BUSINESS_OWNER:
        return None
    home = ctx.config.business_home_path
    if ctx.category is RouteCategory.ONBOARDING:
        return Decision.redirect(home, "business_on_onboarding")
    if ctx.category is RouteCategory.BUSINESS_RESTRICTED:
        return Decision.allow("business_on_business")
    if ctx.is_root:
        return Decision.redirect(home, "root_business")
    if ctx.on_any(ctx.config.personal_routes):
        return Decision.redirect(home, "business_on_personal")
    if ctx.category is RouteCategory.ADMIN_RESTRICTED:
        return Decision.redirect(home, "business_on_admin")
    if ctx.category is RouteCategory.PROTECTED:
        if ctx.on_any(ctx.config.owner_shared_routes):
            return Decision.allow("business_on_shared")
        return Decision.redirect(home, "business_on_protected")
    return None


def rule_profile_unknown(ctx: DecisionInput) -> Decision | None:
    """Rule 7: profile unreadable — let the user through, never guess onboarding."""
    if ctx.profile.known:
        return None
    if ctx.category in PRIVILEGED_CATEGORIES:
        return Decision.redirect(ctx.config.home_path, "status_unknown_on_privileged")
    if ctx.is_root:
        return Decision.redirect(ctx.config.home_path, "root_status_unknown")
    return Decision.allow("status_unknown_allow")


def rule_onboarding_incomplete(ctx: DecisionInput) -> Decision | None:
    """Rule 8: known incomplete onboarding — walk the steps in order."""
    if ctx.trusted_role is not Role.USER or ctx.profile.onboarding_complete:
        return None
    if ctx.is_root:
        return Decision.redirect(ctx.config.home_path, "root_user")
    if ctx.category is RouteCategory.ONBOARDING:
        if ctx.on(ctx.config.completion_path):
            return Decision.redirect(current_step_path(ctx), "incomplete_on_completion")
        if requested_step_index(ctx) <= current_step_index(ctx):
            return Decision.allow("incomplete_on_reached_step")
        return Decision.redirect(current_step_path(ctx), "incomplete_step_ahead")
    if ctx.category in RESTRICTED_CATEGORIES:
        return Decision.redirect(ctx.config.onboarding_entry_path, "incomplete_on_protected")
    return None


def rule_onboarding_complete(ctx: DecisionInput) -> Decision | None:
    """Rule 9: onboarding done — onboarding pages (bar the celebration) are closed."""
    if ctx.trusted_role is not Role.USER or not ctx.profile.onboarding_complete:
        return None
    if ctx.is_root:
        return Decision.redirect(ctx.config.home_path, "root_user")
    if ctx.category is RouteCategory.ONBOARDING:
        if ctx.on(ctx.config.completion_path):
            return Decision.allow("complete_on_completion")
        return Decision.redirect(ctx.config.profile_path, "complete_on_onboarding")
    if ctx.category in PRIVILEGED_CATEGORIES:
        return Decision.redirect(ctx.config.profile_path, "user_on_privileged")
    if ctx.category is RouteCategory.AUTH_PAGE:
        return None
    return Decision.allow("complete_allow")


def rule_authenticated_auth_page(ctx: DecisionInput) -> Decision | None:
    """Rule 10: verified identities are sent from auth pages to their home."""
    if ctx.category is RouteCategory.AUTH_PAGE and ctx.identity.verified:
        return Decision.redirect(role_home(ctx), "verified_on_auth_page")
    return None


RULES: tuple[Rule, ...] = (
    rule_password_reset,
    rule_guest_auth_page,
    rule_guest,
    rule_unverified,
    rule_admin,
    rule_business_owner,
    rule_profile_unknown,
    rule_onboarding_incomplete,
    rule_onboarding_complete,
    rule_authenticated_auth_page,
)


def decide(ctx: DecisionInput, rules: tuple[Rule, ...] = RULES) -> Decision:
    """Run rules in precedence order — first Decision wins."""
    for rule in rules:
        decision = rule(ctx)
        if decision is not None:
            return decision
    return Decision.allow("default_allow")
