import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest

from descent.engine import (
    GENERIC_FAILURE_NOTICE,
    ActionSpec,
    Chain,
    Continue,
    DisplayPayload,
    InteractionBroker,
    InteractionResponse,
    RegistrationConflict,
    SessionController,
    SessionPlan,
    SessionRegistry,
    SessionRenderer,
    SessionSurface,
    Terminal,
    launch,
)
from descent.gateway import GatewayTimeout

OWNER = 42
NEXT = (ActionSpec("next", "Next"),)


class RecordingSurface(SessionSurface):
    def __init__(self, message_id: int = 1000) -> None:
        self.message_id = message_id
        self.payloads: list[DisplayPayload] = []

    async def show(self, payload: DisplayPayload) -> int:
        self.payloads.append(payload)
        return self.message_id


class CounterRenderer(SessionRenderer[int]):
    expired_notice = "Too slow."

    def render(self, state: int, actions) -> DisplayPayload:
        return DisplayPayload(title="Counter", body=f"value {state}")


class CountingStep:
    def __init__(self, *, stop_at: int = 3) -> None:
        self.calls = 0
        self.stop_at = stop_at

    async def __call__(self, state: int, response: InteractionResponse):
        self.calls += 1
        if state + 1 >= self.stop_at:
            return Terminal("done")
        return Continue(state + 1, NEXT)


def _plan(step, *, ttl: float = 60.0, owner: int = OWNER, state: int = 0) -> SessionPlan[int]:
    return SessionPlan(
        name="counter",
        owner_id=owner,
        state=state,
        actions=NEXT,
        step=step,
        renderer=CounterRenderer(),
        ttl=ttl,
    )


def _response(
    *, session_id: int = 1000, actor: int = OWNER, choice: str = "next"
) -> InteractionResponse:
    return InteractionResponse(
        session_id=session_id,
        actor_id=actor,
        choice_id=choice,
        timestamp=datetime.now(timezone.utc),
    )


async def _start(
    registry: SessionRegistry,
    step,
    *,
    surface: Optional[RecordingSurface] = None,
    **kwargs,
) -> tuple[SessionController, RecordingSurface]:
    surface = surface or RecordingSurface()
    controller = SessionController(registry, surface, _plan(step, **kwargs))
    await controller.start()
    return controller, surface


def test_concurrent_start_on_same_message_registers_once() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        surface = RecordingSurface()
        first = SessionController(registry, surface, _plan(CountingStep(), state=1))
        second = SessionController(registry, surface, _plan(CountingStep(), state=99))
        results = await asyncio.gather(first.start(), second.start(), return_exceptions=True)
        conflicts = [result for result in results if isinstance(result, RegistrationConflict)]
        assert len(conflicts) == 1
        assert conflicts[0].session_id == 1000
        assert results.count(1000) == 1
        assert len(registry) == 1
        winner = await registry.lookup(1000)
        assert [payload.body for payload in surface.payloads] == [f"value {winner.plan.state}"]
        await registry.drain()

    asyncio.run(runner())


def test_rejected_start_leaves_the_live_message_alone() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        live, surface = await _start(registry, CountingStep(), state=1)
        intruder = SessionController(registry, surface, _plan(CountingStep(), state=99))

        with pytest.raises(RegistrationConflict):
            await intruder.start()

        assert [payload.body for payload in surface.payloads] == ["value 1"]
        assert await registry.lookup(1000) is live
        assert intruder.session is None
        await live.abort()

    asyncio.run(runner())


def test_registry_snapshots_do_not_follow_retirement() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        controller, _ = await _start(registry, CountingStep())
        ids = await registry.keys()
        controllers = await registry.values()

        await controller.abort()

        assert ids == (1000,)
        assert controllers == (controller,)
        assert await registry.keys() == ()

    asyncio.run(runner())


def test_near_simultaneous_responses_cause_one_transition() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        step = CountingStep(stop_at=10)
        controller, surface = await _start(registry, step)

        statuses = await asyncio.gather(broker.dispatch(_response()), broker.dispatch(_response()))
        await controller.settled()

        assert sorted(statuses) == ["accepted", "stale"]
        assert step.calls == 1
        assert controller.session.state == 1
        assert len(surface.payloads) == 2
        await registry.drain()

    asyncio.run(runner())


def test_expired_session_ignores_late_responses() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        step = CountingStep()
        controller, surface = await _start(registry, step, ttl=0.01)

        assert await asyncio.wait_for(controller.wait_closed(), timeout=1) == "expired"
        assert await broker.dispatch(_response()) == "unmatched"
        assert controller.offer(_response()) == "stale"
        assert step.calls == 0

        expired = surface.payloads[-1]
        assert expired.notice == "Too slow."
        assert expired.actions and all(action.disabled for action in expired.actions)

    asyncio.run(runner())


def test_zero_ttl_expires_immediately() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        step = CountingStep()
        controller, surface = await _start(registry, step, ttl=0)

        assert controller.status == "expired"
        assert len(registry) == 0
        assert step.calls == 0
        assert len(surface.payloads) == 2

    asyncio.run(runner())


def test_retiring_twice_is_a_noop() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        controller, _ = await _start(registry, CountingStep())
        other = SessionController(registry, RecordingSurface(), _plan(CountingStep()))

        assert await registry.retire(1000, other) is None
        assert await registry.lookup(1000) is controller
        assert await registry.retire(1000) is controller
        assert await registry.retire(1000) is None
        assert await registry.keys() == ()
        await controller.abort()

    asyncio.run(runner())


def test_continue_twice_then_terminal_renders_four_times() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        controller, surface = await _start(registry, CountingStep(stop_at=3))

        for expected in ("active", "active", "completed"):
            assert await broker.dispatch(_response()) == "accepted"
            await controller.settled()
            assert controller.status == expected

        assert len(surface.payloads) == 4
        assert [payload.body for payload in surface.payloads[:3]] == ["value 0", "value 1", "value 2"]
        final = surface.payloads[-1]
        assert final.notice == "done"
        assert final.actions == ()
        assert len(registry) == 0

    asyncio.run(runner())


def test_response_from_another_user_changes_nothing() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        step = CountingStep()
        controller, surface = await _start(registry, step)
        deadline = controller.session.deadline

        assert await broker.dispatch(_response(actor=7)) == "unauthorized"

        assert controller.session.deadline == deadline
        assert controller.session.state == 0
        assert controller.armed
        assert step.calls == 0
        assert len(surface.payloads) == 1
        await registry.drain()

    asyncio.run(runner())


def test_unknown_choice_is_stale() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        controller, _ = await _start(registry, CountingStep())

        assert await broker.dispatch(_response(choice="nope")) == "stale"
        assert controller.armed
        await registry.drain()

    asyncio.run(runner())


def test_gateway_timeout_in_step_fails_session() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        reported: list[BaseException] = []

        async def reporter(exc: BaseException, session) -> None:
            reported.append(exc)

        async def step(state: int, response: InteractionResponse):
            raise GatewayTimeout("POST /combat/resolve timed out")

        surface = RecordingSurface()
        controller = SessionController(registry, surface, _plan(step), reporter=reporter)
        await controller.start()

        assert await broker.dispatch(_response()) == "accepted"
        await controller.settled()

        assert controller.status == "failed"
        assert len(registry) == 0
        assert len(reported) == 1
        assert isinstance(reported[0], GatewayTimeout)
        failures = [payload for payload in surface.payloads if payload.notice == GENERIC_FAILURE_NOTICE]
        assert len(failures) == 1
        assert surface.payloads[-1].actions == ()

    asyncio.run(runner())


def test_broker_reports_unmatched_messages() -> None:
    async def runner() -> None:
        broker = InteractionBroker(SessionRegistry())
        assert await broker.dispatch(_response(session_id=999)) == "unmatched"

    asyncio.run(runner())


def test_slow_step_does_not_block_other_sessions() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        release = asyncio.Event()

        async def slow_step(state: int, response: InteractionResponse):
            await release.wait()
            return Terminal("slow done")

        slow, _ = await _start(registry, slow_step, surface=RecordingSurface(1))
        fast, fast_surface = await _start(registry, CountingStep(stop_at=1), surface=RecordingSurface(2))

        assert await broker.dispatch(_response(session_id=1)) == "accepted"
        assert await broker.dispatch(_response(session_id=2)) == "accepted"
        await asyncio.wait_for(fast.settled(), timeout=1)

        assert fast.status == "completed"
        assert fast_surface.payloads[-1].notice == "done"
        assert slow.status == "active"

        release.set()
        await slow.settled()
        assert slow.status == "completed"

    asyncio.run(runner())


def test_chain_hands_message_to_delegate() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        delegate = _plan(CountingStep(stop_at=1), state=5)

        async def step(state: int, response: InteractionResponse):
            return Chain(delegate)

        controller, surface = await _start(registry, step)
        assert await broker.dispatch(_response()) == "accepted"
        await controller.settled()

        assert controller.status == "completed"
        successor = controller.successor
        assert successor is not None
        assert successor.status == "active"
        assert await registry.lookup(1000) is successor
        assert surface.payloads[-1].body == "value 5"

        assert await broker.dispatch(_response()) == "accepted"
        await successor.settled()
        assert successor.status == "completed"

    asyncio.run(runner())


def test_rearming_replaces_previous_deadline() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        broker = InteractionBroker(registry)
        controller, _ = await _start(registry, CountingStep(stop_at=10), ttl=0.3)

        await asyncio.sleep(0.2)
        assert await broker.dispatch(_response()) == "accepted"
        await controller.settled()
        # Past the first deadline, before the second.
        await asyncio.sleep(0.2)
        assert controller.status == "active"

        assert await asyncio.wait_for(controller.wait_closed(), timeout=1) == "expired"

    asyncio.run(runner())


def test_launch_shows_terminal_without_session() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        surface = RecordingSurface()
        controller = await launch(registry, surface, Terminal("nothing to do"))

        assert controller is None
        assert len(registry) == 0
        assert surface.payloads == [DisplayPayload(notice="nothing to do")]

    asyncio.run(runner())


def test_launch_rejects_bare_continue() -> None:
    async def runner() -> None:
        with pytest.raises(TypeError):
            await launch(SessionRegistry(), RecordingSurface(), Continue(1, NEXT))

    asyncio.run(runner())


def test_drain_fails_active_sessions_and_disables_controls() -> None:
    async def runner() -> None:
        registry = SessionRegistry()
        controller, surface = await _start(registry, CountingStep())

        assert await registry.drain() == 1
        assert controller.status == "failed"
        assert all(action.disabled for action in surface.payloads[-1].actions)
        assert len(registry) == 0

    asyncio.run(runner())
