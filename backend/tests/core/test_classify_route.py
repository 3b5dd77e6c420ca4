"""Route Classification — tests for path normalization and table matching.

Tests cover:
    - normalize_path strips query/fragment, duplicate and trailing slashes
    - Most specific pattern wins across tables (edit/review suffixes)
    - Precedence breaks ties between equally specific patterns
    - Unknown paths fall back to the default category
    - Exclusions for API, framework and asset paths
"""

import pytest

from route_guard.core.classify_route import (
    RouteClassifier, compile_pattern, normalize_path, path_matches,
)
from route_guard.core.domain_types import OnboardingStep, RouteCategory
from route_guard.core.route_config import DEFAULT_ROUTE_CONFIG, RouteConfig

classifier = RouteClassifier(DEFAULT_ROUTE_CONFIG)


# ─── normalize_path ──────────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("/", "/"),
    ("", "/"),
    ("/profile/", "/profile"),
    ("//profile//settings", "/profile/settings"),
    ("/login?redirect=/saved", "/login"),
    ("/home#top", "/home"),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


def test_path_matches_is_segment_wise():
    assert path_matches("/profile/edit", "/profile")
    assert path_matches("/profile", "/profile")
    assert not path_matches("/profiles", "/profile")


# ─── classify ────────────────────────────────────────────────────

@pytest.mark.parametrize("path, category", [
    ("/forgot-password", RouteCategory.PASSWORD_RESET),
    ("/reset-password/token", RouteCategory.PASSWORD_RESET),
    ("/login", RouteCategory.AUTH_PAGE),
    ("/auth/callback", RouteCategory.AUTH_PAGE),
    ("/admin/users", RouteCategory.ADMIN_RESTRICTED),
    ("/my-businesses", RouteCategory.BUSINESS_RESTRICTED),
    ("/interests", RouteCategory.ONBOARDING),
    ("/complete", RouteCategory.ONBOARDING),
    ("/profile", RouteCategory.PROTECTED),
    ("/dm/thread-9", RouteCategory.PROTECTED),
    ("/home", RouteCategory.PUBLIC),
    ("/explore", RouteCategory.PUBLIC),
    ("/event/42", RouteCategory.PUBLIC),
])
def test_classify_known_paths(path, category):
    assert classifier.classify(path) is category


def test_business_detail_is_public_but_edit_is_business_restricted():
    assert classifier.classify("/business/acme") is RouteCategory.PUBLIC
    assert classifier.classify("/business/acme/edit") is RouteCategory.BUSINESS_RESTRICTED


def test_business_review_suffix_is_protected():
    assert classifier.classify("/business/acme/review") is RouteCategory.PROTECTED


def test_business_login_beats_public_business_prefix():
    assert classifier.classify("/business/login") is RouteCategory.AUTH_PAGE


def test_unknown_path_uses_default_category():
    assert classifier.classify("/no-such-page") is RouteCategory.PUBLIC
    assert classifier.classify("/") is RouteCategory.PUBLIC


def test_query_string_does_not_affect_classification():
    assert classifier.classify("/profile?tab=reviews") is RouteCategory.PROTECTED


def test_precedence_breaks_ties_between_tables():
    config = DEFAULT_ROUTE_CONFIG.model_copy(update={
        "tables": {
            RouteCategory.PUBLIC: ("/shared",),
            RouteCategory.PROTECTED: ("/shared",),
        },
    })
    assert RouteClassifier(config).classify("/shared/x") is RouteCategory.PROTECTED


def test_exact_marker_limits_pattern_to_one_path():
    config = RouteConfig(
        version="t",
        tables={RouteCategory.PROTECTED: ("/inbox$",)},
        onboarding_steps={step: f"/{step.value}" for step in OnboardingStep},
    )
    c = RouteClassifier(config)
    assert c.classify("/inbox") is RouteCategory.PROTECTED
    assert c.classify("/inbox/1") is RouteCategory.PUBLIC


def test_root_pattern_is_never_a_catch_all():
    pattern = compile_pattern("/", RouteCategory.PROTECTED)
    assert pattern.exact
    assert pattern.matches(())
    assert not pattern.matches(("home",))


# ─── is_excluded ─────────────────────────────────────────────────

@pytest.mark.parametrize("path", [
    "/api/v1/health/",
    "/_next/static/chunk.js",
    "/static/app.css",
    "/favicon.ico",
    "/robots.txt",
    "/images/logo.PNG",
])
def test_excluded_paths(path):
    assert classifier.is_excluded(path)


@pytest.mark.parametrize("path", ["/", "/profile", "/apiary", "/home"])
def test_guarded_paths(path):
    assert not classifier.is_excluded(path)
