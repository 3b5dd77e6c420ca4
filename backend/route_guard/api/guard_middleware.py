"""Access Guard Middleware — applies AccessPipeline decisions at the ASGI boundary.

Invariants:
    - Non-HTTP scopes and excluded paths (API, static assets) pass through untouched
    - REDIRECT → 307 with Location; REWRITE → downstream app sees the target path;
      ALLOW → downstream app sees the request unchanged
    - Every guarded response carries no-cache headers and the cookie updates the
      pipeline asked for (guard token, refreshed or cleared session cookies)
    - An unexpected pipeline exception never takes the site down: logged, request
      passed through (fail open)

Design Decisions:
    - Pure ASGI over BaseHTTPMiddleware: no body buffering, streaming responses and
      rewrites of scope["path"] work unchanged
    - Pipeline looked up on app.state when not injected: the lifespan owns
      construction and shutdown of its HTTP/DB collaborators
    - Set-Cookie strings produced by Starlette's Response.set_cookie/delete_cookie,
      so attribute formatting stays identical between redirects and pass-throughs
"""

import logging
from urllib.parse import urlencode

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from route_guard.config import Settings, get_settings
from route_guard.core.domain_types import DecisionKind, GuardStateAction
from route_guard.infrastructure.guard_token import GuardTokenCodec
from route_guard.infrastructure.session_backend import credentials_from_cookies
from route_guard.services.access_pipeline import AccessOutcome, AccessPipeline, GuardRequest

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

REFRESH_COOKIE_MAX_AGE = 400 * 24 * 3600


class AccessGuardMiddleware:
    """ASGI middleware running the access pipeline in front of the app."""

    def __init__(
        self,
        app: ASGIApp,
        pipeline: AccessPipeline | None = None,
        settings: Settings | None = None,
    ):
        self.app = app
        self.pipeline = pipeline
        self.settings = settings or get_settings()
        self.codec = GuardTokenCodec(
            self.settings.guard_token_secret, self.settings.guard_window_ms,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        pipeline = self.pipeline or _app_pipeline(scope)
        request = Request(scope)
        if pipeline is None or pipeline.is_excluded(request.url.path):
            await self.app(scope, receive, send)
            return

        try:
            outcome = await pipeline.evaluate(self._guard_request(request))
        except Exception as e:
            logger.error(
                f"Access guard failed, passing request through: {e}",
                exc_info=True, extra={"path": request.url.path},
            )
            await self.app(scope, receive, send)
            return

        cookies = self._cookie_headers(outcome, request, pipeline.clock())
        decision = outcome.decision

        if decision.kind is DecisionKind.REDIRECT:
            response = RedirectResponse(
                self._location(outcome, pipeline, request), status_code=307,
            )
            _apply_headers(response.headers, cookies)
            await response(scope, receive, send)
            return

        if decision.kind is DecisionKind.REWRITE:
            scope = dict(scope)
            scope["path"] = decision.target
            scope["raw_path"] = decision.target.encode("latin-1")

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                _apply_headers(MutableHeaders(scope=message), cookies)
            await send(message)

        await self.app(scope, receive, send_with_headers)

    # ─── Request → GuardRequest ─────────────────────────────────

    def _guard_request(self, request: Request) -> GuardRequest:
        return GuardRequest(
            path=request.url.path,
            referrer=request.headers.get("referer"),
            is_prefetch=self._is_prefetch(request),
            credentials=credentials_from_cookies(
                request.cookies,
                self.settings.access_cookie_name,
                self.settings.refresh_cookie_name,
            ),
            guard_state=self.codec.decode(
                request.cookies.get(self.settings.guard_cookie_name),
            ),
        )

    def _is_prefetch(self, request: Request) -> bool:
        for header, marker in self.settings.prefetch_headers.items():
            value = request.headers.get(header)
            if value is not None and marker.lower() in value.lower():
                return True
        return False

    # ─── Outcome → Response ─────────────────────────────────────

    def _location(
        self, outcome: AccessOutcome, pipeline: AccessPipeline, request: Request,
    ) -> str:
        target = outcome.decision.target
        param = self.settings.login_return_param
        if (
            param
            and target == pipeline.config.login_path
            and not outcome.identity.present
        ):
            return f"{target}?{urlencode({param: request.url.path})}"
        return target

    def _cookie_headers(
        self, outcome: AccessOutcome, request: Request, now_ms: int,
    ) -> list[str]:
        s = self.settings
        scratch = Response()
        options = {"httponly": True, "samesite": "lax", "secure": s.cookie_secure, "path": "/"}

        guard = outcome.guard
        if guard.action is GuardStateAction.SET and guard.state is not None:
            scratch.set_cookie(
                s.guard_cookie_name,
                self.codec.encode(guard.state, now_ms),
                max_age=self.codec.max_age_seconds,
                **options,
            )
        elif guard.action is GuardStateAction.CLEAR and s.guard_cookie_name in request.cookies:
            scratch.delete_cookie(s.guard_cookie_name, **options)

        identity = outcome.identity
        refreshed = identity.refreshed_credentials
        if refreshed is not None and refreshed.access_token:
            access_max_age = None
            if refreshed.expires_at is not None:
                access_max_age = max(0, refreshed.expires_at - now_ms // 1000)
            scratch.set_cookie(
                s.access_cookie_name, refreshed.access_token,
                max_age=access_max_age, **options,
            )
            if refreshed.refresh_token:
                scratch.set_cookie(
                    s.refresh_cookie_name, refreshed.refresh_token,
                    max_age=REFRESH_COOKIE_MAX_AGE, **options,
                )
        elif identity.clear_credentials:
            scratch.delete_cookie(s.access_cookie_name, **options)
            scratch.delete_cookie(s.refresh_cookie_name, **options)

        return [
            value.decode("latin-1")
            for key, value in scratch.raw_headers
            if key == b"set-cookie"
        ]


def _app_pipeline(scope: Scope) -> AccessPipeline | None:
    app = scope.get("app")
    state = getattr(app, "state", None)
    return getattr(state, "access_pipeline", None)


def _apply_headers(headers: MutableHeaders, cookies: list[str]) -> None:
    for cookie in cookies:
        headers.append("set-cookie", cookie)
    for name, value in NO_CACHE_HEADERS.items():
        headers[name] = value
