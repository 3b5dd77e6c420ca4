"""Identity Resolver — turns session credentials into a classified Identity.

Invariants:
    - resolve() never raises: every failure becomes Identity.absent(error_class)
    - Whole resolution bounded by timeout_seconds → TRANSIENT on expiry
    - NETWORK signatures retried up to max_retries with exponential backoff;
      FATAL, EXPECTED_ABSENT and UNKNOWN are never retried
    - At most one refresh per resolution: an expired access token is exchanged
      once, and the refreshed credentials ride along on the Identity
    - Proactive refresh near expiry is best-effort: its failure keeps the
      already-resolved identity

Design Decisions:
    - Retry/backoff copied from the resilient API client pattern (±25% jitter)
      so concurrent requests from one browser do not retry in lockstep
    - Refresh failure → EXPECTED_ABSENT (session ended), except network-shaped
      refresh failures → TRANSIENT (session may still be fine) and a vanished
      principal → FATAL, so the dead cookies are cleared instead of replayed
"""

import asyncio
import logging
import random
import time
from collections.abc import Callable

from route_guard.core.classify_failure import classify_auth_error
from route_guard.core.domain_types import AuthErrorSignature, ErrorClass
from route_guard.core.errors import SessionBackendError
from route_guard.core.guard_state import Identity, SessionCredentials, SessionUser
from route_guard.core.repository_protocols import SessionBackend

logger = logging.getLogger(__name__)

_SIGNATURE_TO_CLASS = {
    AuthErrorSignature.EXPECTED_ABSENT: ErrorClass.EXPECTED_ABSENT,
    AuthErrorSignature.FATAL: ErrorClass.FATAL,
    AuthErrorSignature.NETWORK: ErrorClass.TRANSIENT,
    AuthErrorSignature.UNKNOWN: ErrorClass.TRANSIENT,
    # reached only when no refresh is possible any more
    AuthErrorSignature.REFRESHABLE: ErrorClass.EXPECTED_ABSENT,
}


class IdentityResolver:
    """Resolve an Identity through a SessionBackend with retry and refresh."""

    def __init__(
        self,
        backend: SessionBackend,
        timeout_seconds: float = 5.0,
        max_retries: int = 2,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 4000,
        refresh_margin_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.refresh_margin_seconds = refresh_margin_seconds
        self.clock = clock

    async def resolve(self, credentials: SessionCredentials) -> Identity:
        if credentials.is_empty:
            logger.debug("No session material", extra={"error_class": ErrorClass.EXPECTED_ABSENT.value})
            return Identity.absent(ErrorClass.EXPECTED_ABSENT)
        try:
            return await asyncio.wait_for(
                self._resolve(credentials), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Identity resolution timed out after {self.timeout_seconds}s",
                extra={"error_class": ErrorClass.TRANSIENT.value},
            )
            return Identity.absent(ErrorClass.TRANSIENT)

    async def _resolve(self, credentials: SessionCredentials) -> Identity:
        refreshed: SessionCredentials | None = None

        # Refresh-only session: the access cookie already expired client-side
        if not credentials.access_token:
            refreshed, signature = await self._refresh(credentials)
            if refreshed is None:
                return self._absent(_refresh_failure_class(signature))
            credentials = refreshed

        user, signature = await self._fetch_user(credentials)

        if user is None and signature is AuthErrorSignature.REFRESHABLE and refreshed is None:
            refreshed, refresh_signature = await self._refresh(credentials)
            if refreshed is None:
                return self._absent(_refresh_failure_class(refresh_signature))
            user, signature = await self._fetch_user(refreshed)

        if user is None:
            return self._absent(_SIGNATURE_TO_CLASS[signature])

        if refreshed is None and self._near_expiry(user, credentials):
            refreshed, _ = await self._refresh(credentials)
            if refreshed is None:
                logger.warning(
                    "Proactive session refresh failed; keeping current session",
                    extra={"user_id": user.user_id},
                )
        return Identity.of(user, refreshed)

    async def _fetch_user(
        self, credentials: SessionCredentials,
    ) -> tuple[SessionUser | None, AuthErrorSignature | None]:
        """get_identity with retry on network-shaped failures."""
        for attempt in range(self.max_retries + 1):
            try:
                return await self.backend.get_identity(credentials), None
            except SessionBackendError as e:
                signature = classify_auth_error(e.backend_message, e.error_code, e.status_code)
                error_code = e.error_code
                detail = e.backend_message
            except Exception as e:
                logger.error(f"Unexpected session backend error: {e}", exc_info=True)
                return None, AuthErrorSignature.UNKNOWN

            if signature is AuthErrorSignature.UNKNOWN:
                logger.warning(
                    f"Unclassified session backend error: {detail}",
                    extra={"error_code": error_code, "attempt": attempt + 1},
                )
            if signature is not AuthErrorSignature.NETWORK:
                return None, signature
            if attempt >= self.max_retries:
                logger.warning(
                    f"Session backend unreachable after {self.max_retries} retries: {detail}",
                    extra={"error_code": error_code, "attempt": attempt + 1},
                )
                return None, signature

            delay = self._backoff(attempt)
            logger.warning(
                f"Session backend transient error, retry after {delay}ms: {detail}",
                extra={"error_code": error_code, "attempt": attempt + 1},
            )
            await asyncio.sleep(delay / 1000)
        return None, AuthErrorSignature.NETWORK

    async def _refresh(
        self, credentials: SessionCredentials,
    ) -> tuple[SessionCredentials | None, AuthErrorSignature | None]:
        if not credentials.refresh_token:
            return None, AuthErrorSignature.EXPECTED_ABSENT
        try:
            return await self.backend.refresh(credentials), None
        except SessionBackendError as e:
            signature = classify_auth_error(e.backend_message, e.error_code, e.status_code)
            logger.info(
                f"Session refresh failed: {e.backend_message}",
                extra={"error_code": e.error_code},
            )
            return None, signature
        except Exception as e:
            logger.error(f"Unexpected session refresh error: {e}", exc_info=True)
            return None, AuthErrorSignature.UNKNOWN

    def _near_expiry(self, user: SessionUser, credentials: SessionCredentials) -> bool:
        expires_at = user.expires_at or credentials.expires_at
        if expires_at is None or not credentials.refresh_token:
            return False
        return expires_at - self.clock() <= self.refresh_margin_seconds

    def _absent(self, error_class: ErrorClass) -> Identity:
        if error_class is ErrorClass.EXPECTED_ABSENT:
            logger.debug("Session absent", extra={"error_class": error_class.value})
        else:
            logger.warning(
                f"Identity unavailable: {error_class.value}",
                extra={"error_class": error_class.value},
            )
        return Identity.absent(error_class)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


def _refresh_failure_class(signature: AuthErrorSignature | None) -> ErrorClass:
    if signature is AuthErrorSignature.FATAL:
        return ErrorClass.FATAL
    if signature in (AuthErrorSignature.NETWORK, AuthErrorSignature.UNKNOWN):
        return ErrorClass.TRANSIENT
    return ErrorClass.EXPECTED_ABSENT
