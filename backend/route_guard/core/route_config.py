"""Route Configuration — the immutable, versioned route tables consumed by the classifier and engine.

Invariants:
    - RouteConfig is frozen; one instance per process, passed by reference
    - Every pattern starts with "/"; "*" matches one segment; trailing "$" means exact-only
    - Every OnboardingStep has exactly one path in onboarding_steps
    - Guest rewrite aliases map exact paths to exact paths

Design Decisions:
    - Pydantic model over module-level lists: validated once at load, JSON-overridable
      per deployment without code changes
    - DEFAULT_ROUTE_CONFIG mirrors the production page tree; a JSON file named by
      settings.route_config_path replaces it wholesale (no partial merge surprises)
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from route_guard.core.domain_types import OnboardingStep, RouteCategory
from route_guard.core.errors import RouteConfigError


class RouteConfig(BaseModel):
    """Static route tables plus the well-known landing paths."""

    model_config = ConfigDict(frozen=True)

    version: str
    tables: dict[RouteCategory, tuple[str, ...]]
    default_category: RouteCategory = RouteCategory.PUBLIC

    # Landing paths
    root_path: str = "/"
    home_path: str = "/home"
    login_path: str = "/login"
    verify_email_path: str = "/verify-email"
    admin_home_path: str = "/admin"
    business_home_path: str = "/my-businesses"
    profile_path: str = "/profile"
    onboarding_entry_path: str = "/interests"
    completion_path: str = "/complete"

    onboarding_steps: dict[OnboardingStep, str]

    # Pages a request may legitimately arrive from during email verification
    verification_paths: tuple[str, ...] = ("/verify-email", "/auth/callback")

    # Personal discovery pages business owners are sent away from
    personal_routes: tuple[str, ...] = ()
    # Protected pages business owners share with personal accounts
    owner_shared_routes: tuple[str, ...] = ()

    guest_rewrites: dict[str, str] = {}

    # Never guarded (assets, API, framework internals)
    excluded_prefixes: tuple[str, ...] = ()
    excluded_suffixes: tuple[str, ...] = ()

    @field_validator("tables")
    @classmethod
    def patterns_are_absolute(
        cls, v: dict[RouteCategory, tuple[str, ...]],
    ) -> dict[RouteCategory, tuple[str, ...]]:
        for category, patterns in v.items():
            for pattern in patterns:
                if not pattern.startswith("/"):
                    raise ValueError(
                        f"pattern {pattern!r} in {category.value} must start with '/'",
                    )
        return v

    @field_validator("onboarding_steps")
    @classmethod
    def every_step_has_a_path(
        cls, v: dict[OnboardingStep, str],
    ) -> dict[OnboardingStep, str]:
        missing = [s.value for s in OnboardingStep if s not in v]
        if missing:
            raise ValueError(f"onboarding_steps missing: {', '.join(missing)}")
        return v

    def step_path(self, step: OnboardingStep) -> str:
        return self.onboarding_steps[step]


DEFAULT_ROUTE_CONFIG = RouteConfig(
    version="2026.03",
    tables={
        RouteCategory.PASSWORD_RESET: ("/forgot-password", "/reset-password"),
        RouteCategory.AUTH_PAGE: (
            "/login", "/register", "/verify-email", "/auth/callback",
            "/business/login", "/business/register",
        ),
        RouteCategory.ADMIN_RESTRICTED: ("/admin",),
        RouteCategory.BUSINESS_RESTRICTED: (
            "/my-businesses", "/owners", "/manage-business",
            "/add-business", "/claim-business", "/business/*/edit",
        ),
        RouteCategory.ONBOARDING: (
            "/onboarding", "/interests", "/subcategories",
            "/deal-breakers", "/complete",
        ),
        RouteCategory.PROTECTED: (
            "/dashboard", "/profile", "/saved", "/dm", "/reviewer",
            "/write-review", "/reviews", "/settings", "/achievements",
            "/events-specials", "/business/*/review",
        ),
        RouteCategory.PUBLIC: (
            "/home", "/business", "/event", "/special", "/category",
            "/categories", "/explore", "/trending", "/for-you",
            "/leaderboard", "/notifications", "/badges", "/discover",
            "/about", "/contact", "/privacy", "/terms", "/for-businesses",
        ),
    },
    onboarding_steps={
        OnboardingStep.INTERESTS: "/interests",
        OnboardingStep.SUBCATEGORIES: "/subcategories",
        OnboardingStep.DEAL_BREAKERS: "/deal-breakers",
        OnboardingStep.COMPLETE: "/complete",
    },
    personal_routes=(
        "/home", "/for-you", "/trending", "/explore",
        "/saved", "/write-review", "/profile",
    ),
    owner_shared_routes=("/settings", "/dm"),
    guest_rewrites={"/discover": "/home"},
    excluded_prefixes=("/api", "/static", "/_next"),
    excluded_suffixes=(
        "favicon.ico", "robots.txt", "sitemap.xml",
        ".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico",
    ),
)


@lru_cache
def load_route_config(path: str | None = None) -> RouteConfig:
    """Load route tables once per process. None → built-in defaults."""
    if not path:
        return DEFAULT_ROUTE_CONFIG
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise RouteConfigError(str(e), path) from e
    try:
        return RouteConfig.model_validate_json(raw)
    except ValidationError as e:
        raise RouteConfigError(
            f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}", path,
        ) from e
