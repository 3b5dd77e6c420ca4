"""Loop Guard — breaks redirect cycles using a small client-held counter.

Invariants:
    - Non-redirect decisions pass through unchanged; the token is cleared
    - Within the window, once max_redirects redirects were issued the next
      redirect is overridden to ALLOW and the token is cleared (loop broken)
    - count increments only while now - window_start_ms <= window_ms;
      otherwise the window restarts at count=1, window_start_ms=now
    - Prefetch/background requests never get overridden and never touch the token
    - The guard state is advisory: it can only turn a REDIRECT into an ALLOW,
      never the reverse, so a forged token cannot deny access

Design Decisions:
    - Pure function with explicit (state in, state out): testable without cookies
    - Window start is reused, not slid, so a tight loop cannot keep itself alive
      by re-arming the timestamp on every hop
"""

from route_guard.core.domain_types import GuardStateAction
from route_guard.core.guard_state import Decision, LoopGuardResult, RedirectGuardState

DEFAULT_WINDOW_MS = 5000
DEFAULT_MAX_REDIRECTS = 2


def in_window(state: RedirectGuardState, now_ms: int, window_ms: int = DEFAULT_WINDOW_MS) -> bool:
    return 0 <= now_ms - state.window_start_ms <= window_ms


def apply_loop_guard(
    candidate: Decision,
    guard_state: RedirectGuardState | None,
    now_ms: int,
    *,
    path: str,
    is_prefetch: bool = False,
    window_ms: int = DEFAULT_WINDOW_MS,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> LoopGuardResult:
    """Produce the final decision and what to persist in the guard token."""
    if is_prefetch:
        return LoopGuardResult(candidate, GuardStateAction.KEEP, guard_state)

    if not candidate.is_redirect:
        return LoopGuardResult(candidate, GuardStateAction.CLEAR)

    live = guard_state is not None and in_window(guard_state, now_ms, window_ms)

    if live and guard_state.count >= max_redirects:
        return LoopGuardResult(
            Decision.allow("redirect_loop_broken"), GuardStateAction.CLEAR,
        )

    next_state = RedirectGuardState(
        window_start_ms=guard_state.window_start_ms if live else now_ms,
        count=guard_state.count + 1 if live else 1,
        last_from=path,
        last_to=candidate.target,
    )
    return LoopGuardResult(candidate, GuardStateAction.SET, next_state)
