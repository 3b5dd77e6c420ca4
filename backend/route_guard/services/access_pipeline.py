"""Access Pipeline — classify, resolve, decide and loop-guard one request.

Invariants:
    - Runs classify → identity → profile → decide → loop guard, in that order
    - Password-reset pages short-circuit before any IO
    - Profile status is only fetched for a verified identity (needs the user id,
      and unverified users never reach role/onboarding rules)
    - Emits exactly one decision line per evaluated request (INFO, or WARNING
      when the loop guard overrode a redirect)
    - Never raises for collaborator failures: resolvers degrade to classified states

Design Decisions:
    - Per-request state lives in GuardRequest/AccessOutcome only: the pipeline
      object itself is shared, read-only, and safe across concurrent requests
    - clock injected (epoch milliseconds) so loop-window tests are deterministic
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from route_guard.core.classify_route import RouteClassifier, normalize_path
from route_guard.core.decide_route import DecisionInput, decide
from route_guard.core.domain_types import ErrorClass, GuardStateAction, RouteCategory
from route_guard.core.guard_state import (
    Decision, Identity, LoopGuardResult, ProfileStatus,
    RedirectGuardState, SessionCredentials,
)
from route_guard.core.loop_guard import (
    DEFAULT_MAX_REDIRECTS, DEFAULT_WINDOW_MS, apply_loop_guard,
)
from route_guard.core.route_config import RouteConfig
from route_guard.services.identity_resolver import IdentityResolver
from route_guard.services.profile_status_provider import ProfileStatusProvider

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GuardRequest:
    """Transport-independent view of an inbound request."""
    path: str
    referrer: str | None = None
    is_prefetch: bool = False
    credentials: SessionCredentials = SessionCredentials()
    guard_state: RedirectGuardState | None = None


@dataclass(frozen=True)
class AccessOutcome:
    """Final decision plus everything the transport layer must write back."""
    decision: Decision
    candidate: Decision
    guard: LoopGuardResult
    identity: Identity
    category: RouteCategory
    trace_id: str = ""


class AccessPipeline:
    """Evaluates GuardRequests against one immutable RouteConfig."""

    def __init__(
        self,
        config: RouteConfig,
        identity_resolver: IdentityResolver,
        profile_provider: ProfileStatusProvider,
        classifier: RouteClassifier | None = None,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        clock: Callable[[], int] = _now_ms,
    ):
        self.config = config
        self.classifier = classifier or RouteClassifier(config)
        self.identity_resolver = identity_resolver
        self.profile_provider = profile_provider
        self.window_ms = window_ms
        self.max_redirects = max_redirects
        self.clock = clock

    def is_excluded(self, path: str) -> bool:
        return self.classifier.is_excluded(path)

    async def evaluate(self, request: GuardRequest) -> AccessOutcome:
        trace_id = uuid.uuid4().hex[:8]
        path = normalize_path(request.path)
        category = self.classifier.classify(path)

        if category is RouteCategory.PASSWORD_RESET:
            identity = Identity.absent(ErrorClass.EXPECTED_ABSENT)
            profile = ProfileStatus.unknown()
        else:
            identity = await self.identity_resolver.resolve(request.credentials)
            if identity.verified:
                profile = await self.profile_provider.fetch(identity.user_id)
            else:
                profile = ProfileStatus.unknown()

        candidate = decide(DecisionInput(
            path=path,
            category=category,
            identity=identity,
            profile=profile,
            config=self.config,
            referrer=request.referrer,
        ))
        guard = apply_loop_guard(
            candidate,
            request.guard_state,
            self.clock(),
            path=path,
            is_prefetch=request.is_prefetch,
            window_ms=self.window_ms,
            max_redirects=self.max_redirects,
        )
        outcome = AccessOutcome(
            decision=guard.decision,
            candidate=candidate,
            guard=guard,
            identity=identity,
            category=category,
            trace_id=trace_id,
        )
        self._log(outcome, path, profile)
        return outcome

    def _log(self, outcome: AccessOutcome, path: str, profile: ProfileStatus) -> None:
        decision = outcome.decision
        extra = {
            "trace_id": outcome.trace_id,
            "path": path,
            "category": outcome.category.value,
            "decision": decision.kind.value,
            "target": decision.target,
            "reason": decision.reason,
            "user_id": outcome.identity.user_id,
            "error_class": outcome.identity.error_class.value if outcome.identity.error_class else None,
            "role": profile.role.value if profile.known else None,
            "onboarding_complete": profile.onboarding_complete if profile.known else None,
        }
        if outcome.guard.state is not None and outcome.guard.action is GuardStateAction.SET:
            extra["redirect_count"] = outcome.guard.state.count

        if decision is not outcome.candidate:
            logger.warning(
                f"Redirect loop broken at {path} (suppressed → {outcome.candidate.target})",
                extra=extra,
            )
            return
        logger.info(f"{decision.kind.value} {path}", extra=extra)
