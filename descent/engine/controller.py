"""Lifecycle driver for a single interaction session."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar, Union

from .models import (
    ActionSpec,
    Chain,
    Continue,
    DispatchStatus,
    DisplayPayload,
    InteractionResponse,
    Session,
    SessionPlan,
    SessionStatus,
    StepResult,
    Terminal,
)
from .registry import SessionRegistry
from .rendering import render_outcome

__all__ = ["ErrorReporter", "SessionController", "SessionSurface", "launch"]

log = logging.getLogger(__name__)

S = TypeVar("S")

ErrorReporter = Callable[[BaseException, Optional[Session]], Awaitable[None]]


class SessionSurface:
    """The message a session is bound to.

    :meth:`show` sends the payload the first time it is called and edits the
    same message afterwards. It returns the id of the bound message, which is
    also the session id. :attr:`message_id` is ``None`` until the first show.
    """

    message_id: Optional[int] = None

    async def show(self, payload: DisplayPayload) -> int:
        raise NotImplementedError


class SessionController(Generic[S]):
    """Drive one session from its first render to retirement.

    Exactly one response is consumed per armed wait. Responses and the
    deadline timer race for the same claim; whichever claims first decides
    the transition and everything after it is stale.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        surface: SessionSurface,
        plan: SessionPlan[S],
        *,
        reporter: Optional[ErrorReporter] = None,
    ) -> None:
        self.registry = registry
        self.surface = surface
        self.plan = plan
        self.reporter = reporter
        self.session: Optional[Session[S]] = None
        self.successor: Optional["SessionController"] = None
        self._generation = 0
        self._wait: Optional[int] = None
        self._timer: Optional[asyncio.Task] = None
        self._worker: Optional[asyncio.Task] = None
        self._closed = asyncio.Event()

    # ------------------------------------------------------------------
    @property
    def status(self) -> Optional[SessionStatus]:
        return self.session.status if self.session else None

    @property
    def armed(self) -> bool:
        return self._wait is not None

    async def start(self) -> int:
        """Register, render the initial state and arm the first wait.

        A surface that is already bound to a message is claimed before it is
        drawn on, so a rejected start leaves the message untouched.
        """

        if self.session is not None:
            raise RuntimeError("Session controller has already been started")
        plan = self.plan
        bound = self.surface.message_id
        if bound is not None:
            await self.registry.register(bound, self)
        try:
            session_id = await self.surface.show(self._render(plan.state, plan.actions))
        except Exception:
            if bound is not None:
                await self.registry.retire(bound, self)
            raise
        if bound is None:
            await self.registry.register(session_id, self)
        self.session = Session(
            session_id=session_id,
            owner_id=plan.owner_id,
            state=plan.state,
            deadline=self._deadline(plan.ttl),
            actions=tuple(plan.actions),
        )
        log.debug("Started %s session %s for user %s", plan.name, session_id, plan.owner_id)
        if plan.ttl <= 0:
            await self._expire()
        else:
            self._arm()
        return session_id

    def offer(self, response: InteractionResponse) -> DispatchStatus:
        """Try to claim the armed wait with ``response``.

        Contains no suspension point, so the check and the claim happen
        atomically on the event loop.
        """

        session = self.session
        if session is None or not session.active or self._wait is None:
            return "stale"
        if response.actor_id != session.owner_id:
            return "unauthorized"
        if not session.offers(response.choice_id):
            return "stale"
        self._wait = None
        self._cancel_timer()
        self._worker = asyncio.create_task(self._advance(response))
        self._worker.add_done_callback(self._log_task_failure)
        return "accepted"

    async def settled(self) -> None:
        """Wait until the step triggered by the last accepted response is done."""

        worker = self._worker
        if worker is not None and not worker.done():
            await worker

    async def wait_closed(self) -> Optional[SessionStatus]:
        await self._closed.wait()
        return self.status

    async def abort(self) -> None:
        """Retire an active session as failed and disable its controls."""

        session = self.session
        if session is None or not session.active:
            return
        self._wait = None
        worker = self._worker
        if worker is not None and not worker.done() and worker is not asyncio.current_task():
            worker.cancel()
        payload = self._render(session.state, session.actions).with_disabled_actions()
        try:
            await self.surface.show(payload)
        except Exception:
            log.debug("Could not disable controls for session %s", session.session_id, exc_info=True)
        await self._retire("failed")

    # ------------------------------------------------------------------
    def _render(self, state: S, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return self.plan.renderer.render(state, actions).with_actions(actions)

    @staticmethod
    def _deadline(ttl: float) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=max(ttl, 0))

    def _arm(self) -> None:
        assert self.session is not None
        self._cancel_timer()
        self._generation += 1
        self._wait = self._generation
        ttl = self.plan.ttl
        self.session.deadline = self._deadline(ttl)
        self._timer = asyncio.create_task(self._run_deadline(self._generation, ttl))
        self._timer.add_done_callback(self._log_task_failure)

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()

    async def _run_deadline(self, generation: int, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._wait != generation:
            return
        self._wait = None
        self._timer = None
        await self._expire()

    async def _expire(self) -> None:
        session = self.session
        assert session is not None
        log.debug("Session %s expired without a response", session.session_id)
        payload = self.plan.renderer.render_expired(session.state, session.actions)
        try:
            await self.surface.show(payload)
        except Exception:
            log.warning("Failed to render expiry for session %s", session.session_id, exc_info=True)
        finally:
            await self._retire("expired")

    async def _advance(self, response: InteractionResponse) -> None:
        session = self.session
        assert session is not None
        try:
            result = await self.plan.step(session.state, response)
            await self._apply(result)
        except Exception as exc:
            await self._fail(exc)

    async def _apply(self, result: StepResult) -> None:
        session = self.session
        assert session is not None
        renderer = self.plan.renderer
        if isinstance(result, Terminal):
            await self.surface.show(renderer.render_final(result.outcome).with_actions(()))
            await self._retire("completed")
        elif isinstance(result, Continue):
            session.state = result.state
            session.actions = tuple(result.actions)
            await self.surface.show(self._render(session.state, session.actions))
            self._arm()
        elif isinstance(result, Chain):
            await self._retire("completed")
            successor: SessionController = SessionController(
                self.registry, self.surface, result.delegate, reporter=self.reporter
            )
            self.successor = successor
            await successor.start()
        else:
            raise TypeError(f"Unsupported step result: {result!r}")

    async def _fail(self, exc: BaseException) -> None:
        await self._report(exc)
        try:
            await self.surface.show(self.plan.renderer.render_failure())
        except Exception:
            log.warning("Failed to render failure notice for %s session", self.plan.name, exc_info=True)
        await self._retire("failed")

    async def _report(self, exc: BaseException) -> None:
        if self.reporter is None:
            log.error("%s session failed", self.plan.name, exc_info=exc)
            return
        try:
            await self.reporter(exc, self.session)
        except Exception:
            log.exception("Error reporter raised while handling a %s session failure", self.plan.name)

    async def _retire(self, status: SessionStatus) -> None:
        self._wait = None
        self._cancel_timer()
        session = self.session
        if session is not None:
            if session.active:
                session.status = status
            await self.registry.retire(session.session_id, self)
            log.debug("Session %s retired as %s", session.session_id, session.status)
        self._closed.set()

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:  # pragma: no cover - background task logging
            log.error("Session task failed", exc_info=exc)


async def launch(
    registry: SessionRegistry,
    surface: SessionSurface,
    opening: Union[SessionPlan, StepResult],
    *,
    reporter: Optional[ErrorReporter] = None,
) -> Optional[SessionController]:
    """Start a session from a prepared opening.

    A :class:`Terminal` opening is shown as a final message and no session is
    created.
    """

    if isinstance(opening, Terminal):
        await surface.show(render_outcome(opening.outcome))
        return None
    if isinstance(opening, Chain):
        opening = opening.delegate
    if isinstance(opening, Continue):
        raise TypeError("A Continue result needs a plan to start from")
    controller: SessionController = SessionController(registry, surface, opening, reporter=reporter)
    await controller.start()
    return controller
