"""Session Backend Client — GoTrue-compatible auth API over httpx.

Invariants:
    - get_identity: GET {base}/user with the access token as Bearer credential
    - refresh: POST {base}/token?grant_type=refresh_token with the refresh token
    - Non-2xx responses raise SessionBackendError carrying the backend's own
      message, error code and HTTP status, for core/classify_failure.py
    - httpx transport exceptions are mapped to SessionBackendError with code
      request_timeout or network_error, so callers only handle one exception type

Design Decisions:
    - Shared httpx.AsyncClient injected by the lifespan: one connection pool per
      process, closed on shutdown
    - Access-token expiry read from the token's own exp claim without signature
      verification: the backend already validated the token in the same call,
      the claim is only used to schedule a proactive refresh
"""

import logging

import httpx
import jwt as pyjwt

from route_guard.core.domain_types import UserId
from route_guard.core.errors import SessionBackendError
from route_guard.core.guard_state import SessionCredentials, SessionUser

logger = logging.getLogger(__name__)


class HttpSessionBackend:
    """SessionBackend implementation for a GoTrue-style auth server."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.api_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise SessionBackendError(f"Auth request timed out: {e}", "request_timeout")
        except httpx.TransportError as e:
            raise SessionBackendError(f"Auth network error: {e}", "network_error")

    async def get_identity(self, credentials: SessionCredentials) -> SessionUser:
        if not credentials.access_token:
            raise SessionBackendError("Auth session missing", "session_not_found")

        response = await self._send(
            "GET", f"{self.base_url}/user",
            headers=self._headers(credentials.access_token),
        )
        if response.status_code != 200:
            raise _backend_error(response)

        body = response.json()
        user_id = body.get("id")
        if not user_id:
            raise SessionBackendError("User from sub claim in JWT does not exist", "user_not_found")
        return SessionUser(
            user_id=UserId(user_id),
            email_verified=body.get("email_confirmed_at") is not None,
            expires_at=token_expiry(credentials.access_token) or credentials.expires_at,
        )

    async def refresh(self, credentials: SessionCredentials) -> SessionCredentials:
        if not credentials.refresh_token:
            raise SessionBackendError("Refresh token not found", "refresh_token_not_found")

        response = await self._send(
            "POST", f"{self.base_url}/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": credentials.refresh_token},
            headers=self._headers(),
        )
        if response.status_code != 200:
            raise _backend_error(response)

        body = response.json()
        access_token = body.get("access_token")
        if not access_token:
            raise SessionBackendError("Refresh response without access token", "bad_jwt")
        logger.debug("Session refreshed")
        return SessionCredentials(
            access_token=access_token,
            refresh_token=body.get("refresh_token") or credentials.refresh_token,
            expires_at=body.get("expires_at") or token_expiry(access_token),
        )


def token_expiry(access_token: str | None) -> int | None:
    """Read the exp claim of an access token (unverified), or None."""
    if not access_token:
        return None
    try:
        claims = pyjwt.decode(access_token, options={"verify_signature": False})
    except pyjwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return exp if isinstance(exp, int) else None


def credentials_from_cookies(
    cookies: dict[str, str], access_cookie: str, refresh_cookie: str,
) -> SessionCredentials:
    """Build SessionCredentials from request cookies (empty values → None)."""
    access_token = cookies.get(access_cookie) or None
    return SessionCredentials(
        access_token=access_token,
        refresh_token=cookies.get(refresh_cookie) or None,
        expires_at=token_expiry(access_token),
    )


def _backend_error(response: httpx.Response) -> SessionBackendError:
    """Extract {code, msg} from an auth error body (several historical shapes)."""
    code, message = None, None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("error_code") or body.get("code") or body.get("error")
        message = body.get("msg") or body.get("message") or body.get("error_description")
    if not isinstance(code, str):
        code = None
    return SessionBackendError(
        str(message or response.reason_phrase or f"HTTP {response.status_code}"),
        error_code=code,
        status_code=response.status_code,
    )
