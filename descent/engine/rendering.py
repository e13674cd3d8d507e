"""Renderer contract used by sessions to turn state into display payloads."""

from __future__ import annotations

from dataclasses import replace
from typing import Generic, Optional, Sequence, TypeVar

from .models import ActionSpec, DisplayPayload

__all__ = ["EXPIRED_NOTICE", "GENERIC_FAILURE_NOTICE", "SessionRenderer", "render_outcome"]

S = TypeVar("S")

GENERIC_FAILURE_NOTICE = "❌ An unexpected error occurred. Please try again later."
EXPIRED_NOTICE = "⌛ This prompt has expired."


def render_outcome(outcome: object) -> DisplayPayload:
    """Return a payload for a terminal outcome that has no dedicated renderer."""

    if isinstance(outcome, DisplayPayload):
        return outcome.with_actions(())
    if outcome is None:
        return DisplayPayload(notice="Done.")
    return DisplayPayload(notice=str(outcome))


class SessionRenderer(Generic[S]):
    """Base renderer for a session use site.

    Subclasses implement :meth:`render`. Terminal outcomes that are already a
    :class:`DisplayPayload` or plain text need no override of
    :meth:`render_final`.
    """

    expired_notice: Optional[str] = EXPIRED_NOTICE
    clear_on_expiry = False
    failure_notice = GENERIC_FAILURE_NOTICE

    def render(self, state: S, actions: Sequence[ActionSpec]) -> DisplayPayload:
        raise NotImplementedError

    def render_final(self, outcome: object) -> DisplayPayload:
        return render_outcome(outcome)

    def render_expired(self, state: S, actions: Sequence[ActionSpec]) -> DisplayPayload:
        payload = self.render(state, actions).with_actions(actions)
        if self.clear_on_expiry:
            payload = DisplayPayload(actions=payload.actions)
        if self.expired_notice:
            payload = replace(payload, notice=self.expired_notice)
        return payload.with_disabled_actions()

    def render_failure(self) -> DisplayPayload:
        return DisplayPayload(notice=self.failure_notice)
