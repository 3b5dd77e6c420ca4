"""Profile Status Provider — tests for fail-open lookup and drift retry."""

import asyncio

from route_guard.core.domain_types import OnboardingStep, Role
from route_guard.core.errors import ProfileStoreError
from route_guard.core.repository_protocols import PRIMARY_COLUMNS, REDUCED_COLUMNS
from route_guard.services.profile_status_provider import ProfileStatusProvider

from tests.services.fakes import FakeProfileStore

ROW = {
    "role": "user",
    "account_role": None,
    "onboarding_complete": False,
    "onboarding_completed_at": None,
    "onboarding_step": "deal-breakers",
    "interests_count": 3,
    "subcategories_count": 2,
    "dealbreakers_count": 0,
}


async def test_known_profile_is_normalized():
    store = FakeProfileStore({"u-1": ROW})
    status = await ProfileStatusProvider(store).fetch("u-1")
    assert status.known
    assert status.role is Role.USER
    assert status.onboarding_step is OnboardingStep.DEAL_BREAKERS
    assert not status.onboarding_complete
    assert store.calls == [("u-1", PRIMARY_COLUMNS)]


async def test_missing_row_is_unknown_not_incomplete():
    status = await ProfileStatusProvider(FakeProfileStore()).fetch("u-1")
    assert not status.known


async def test_schema_drift_retries_with_reduced_columns():
    store = FakeProfileStore(
        {"u-1": {**ROW, "onboarding_complete": True}},
        fail_on={"onboarding_completed_at"},
    )
    status = await ProfileStatusProvider(store).fetch("u-1")
    assert status.known
    assert status.onboarding_complete
    assert [columns for _, columns in store.calls] == [PRIMARY_COLUMNS, REDUCED_COLUMNS]


async def test_drift_on_reduced_query_is_unknown():
    store = FakeProfileStore({"u-1": ROW}, fail_on={"onboarding_completed_at", "role"})
    status = await ProfileStatusProvider(store).fetch("u-1")
    assert not status.known
    assert len(store.calls) == 2


async def test_store_error_is_unknown_without_retry():
    store = FakeProfileStore(error=ProfileStoreError("connection refused"))
    status = await ProfileStatusProvider(store).fetch("u-1")
    assert not status.known
    assert len(store.calls) == 1


async def test_unexpected_error_is_unknown():
    store = FakeProfileStore(error=RuntimeError("bug"))
    assert not (await ProfileStatusProvider(store).fetch("u-1")).known


async def test_timeout_is_unknown():
    class SlowStore(FakeProfileStore):
        async def fetch_profile(self, user_id, columns):
            await asyncio.sleep(1)

    status = await ProfileStatusProvider(SlowStore(), timeout_seconds=0.01).fetch("u-1")
    assert not status.known
