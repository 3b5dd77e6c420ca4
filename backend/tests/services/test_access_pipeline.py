"""Access Pipeline — end-to-end decisions with fake IO boundaries.

Tests cover:
    - Password reset short-circuits identity resolution
    - Profile fetched only for verified identities
    - Scenario table: guest, complete user, business owner, admin, incomplete user
    - Loop guard state threaded through consecutive requests
    - Prefetch never overridden
    - Unreachable profile store fails open on protected pages
"""

import pytest

from route_guard.core.domain_types import DecisionKind, ErrorClass, GuardStateAction
from route_guard.core.guard_state import SessionCredentials
from route_guard.core.route_config import DEFAULT_ROUTE_CONFIG
from route_guard.core.errors import ProfileStoreError
from route_guard.services.access_pipeline import AccessPipeline, GuardRequest
from route_guard.services.identity_resolver import IdentityResolver
from route_guard.services.profile_status_provider import ProfileStatusProvider

from tests.services.fakes import FakeProfileStore, FakeSessionBackend, backend_error, user

CREDS = SessionCredentials("access-1", "refresh-1")

PROFILES = {
    "user-complete": {"role": "user", "onboarding_complete": True},
    "user-subcats": {"role": "user", "onboarding_step": "subcategories"},
    "owner": {"role": "user", "account_role": "business_owner"},
    "admin": {"role": "admin", "onboarding_complete": True},
}


class Clock:
    def __init__(self, now_ms: int = 1_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


def _pipeline(identities=(), store=None, clock=None) -> AccessPipeline:
    backend = FakeSessionBackend(list(identities))
    return AccessPipeline(
        DEFAULT_ROUTE_CONFIG,
        IdentityResolver(backend, max_retries=0),
        ProfileStatusProvider(store or FakeProfileStore(PROFILES)),
        clock=clock or Clock(),
    )


async def test_password_reset_skips_identity_resolution():
    pipeline = _pipeline()
    outcome = await pipeline.evaluate(GuardRequest("/reset-password", credentials=CREDS))
    assert outcome.decision.kind is DecisionKind.ALLOW
    assert pipeline.identity_resolver.backend.identity_calls == []


async def test_unverified_identity_does_not_read_profile():
    store = FakeProfileStore(PROFILES)
    pipeline = _pipeline([user("user-complete", verified=False)], store)
    outcome = await pipeline.evaluate(GuardRequest("/profile", credentials=CREDS))
    assert outcome.decision.target == "/verify-email"
    assert store.calls == []


@pytest.mark.parametrize("user_id, path, target", [
    (None, "/", "/home"),
    ("user-complete", "/", "/home"),
    ("owner", "/", "/my-businesses"),
    ("admin", "/login", "/admin"),
    ("user-subcats", "/deal-breakers", "/subcategories"),
    ("user-complete", "/interests", "/profile"),
    ("user-subcats", "/complete", "/subcategories"),
    (None, "/profile", "/login"),
])
async def test_scenarios(user_id, path, target):
    identities = [user(user_id)] if user_id else []
    credentials = CREDS if user_id else SessionCredentials()
    outcome = await _pipeline(identities).evaluate(GuardRequest(path, credentials=credentials))
    assert outcome.decision.kind is DecisionKind.REDIRECT
    assert outcome.decision.target == target
    assert outcome.guard.action is GuardStateAction.SET


async def test_guest_on_public_is_allowed_and_clears_guard():
    outcome = await _pipeline().evaluate(GuardRequest("/home"))
    assert outcome.decision.kind is DecisionKind.ALLOW
    assert outcome.guard.action is GuardStateAction.CLEAR
    assert outcome.identity.error_class is ErrorClass.EXPECTED_ABSENT


async def test_loop_guard_releases_third_redirect_in_window():
    clock = Clock()
    pipeline = _pipeline(clock=clock)
    state, kinds = None, []
    for _ in range(3):
        outcome = await pipeline.evaluate(GuardRequest("/saved", guard_state=state))
        kinds.append(outcome.decision.kind)
        state = outcome.guard.state
        clock.now_ms += 200
    assert kinds == [DecisionKind.REDIRECT, DecisionKind.REDIRECT, DecisionKind.ALLOW]
    assert outcome.candidate.kind is DecisionKind.REDIRECT
    assert outcome.decision.reason == "redirect_loop_broken"


async def test_prefetch_is_never_overridden():
    pipeline = _pipeline()
    first = await pipeline.evaluate(GuardRequest("/saved"))
    second = await pipeline.evaluate(GuardRequest("/saved", guard_state=first.guard.state))
    prefetch = await pipeline.evaluate(GuardRequest(
        "/saved", guard_state=second.guard.state, is_prefetch=True,
    ))
    assert prefetch.decision.kind is DecisionKind.REDIRECT
    assert prefetch.guard.action is GuardStateAction.KEEP


async def test_profile_store_outage_fails_open():
    store = FakeProfileStore(error=ProfileStoreError("connection refused"))
    outcome = await _pipeline([user("user-complete")], store).evaluate(
        GuardRequest("/saved", credentials=CREDS),
    )
    assert outcome.decision.kind is DecisionKind.ALLOW
    assert outcome.decision.reason == "status_unknown_allow"


async def test_fatal_identity_on_protected_goes_to_login():
    identities = [backend_error("User from sub claim in JWT does not exist", "user_not_found", 403)]
    outcome = await _pipeline(identities).evaluate(GuardRequest("/saved", credentials=CREDS))
    assert outcome.decision.target == "/login"
    assert outcome.identity.clear_credentials


async def test_guest_alias_is_rewritten():
    outcome = await _pipeline().evaluate(GuardRequest("/discover"))
    assert outcome.decision.kind is DecisionKind.REWRITE
    assert outcome.decision.target == "/home"
