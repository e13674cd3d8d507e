"""Descending through dungeon floors, with an occasional trader detour."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from descent.engine import (
    ActionSpec,
    Chain,
    Continue,
    DisplayPayload,
    InteractionResponse,
    SessionPlan,
    SessionRenderer,
    StepResult,
    Terminal,
)
from descent.gateway import BackendGateway

from .barter import BarterFlow
from .common import as_mapping, int_value, rejection, text_value

__all__ = ["EXPLORE_TTL", "DungeonFloor", "ExploreFlow", "ExploreRenderer", "ExploreState"]

EXPLORE_TTL = 60.0
GENERATE_PATH = "/dungeon/generate"
EXPLORE_COLOUR = 0x1F8B4C


@dataclass(frozen=True)
class DungeonFloor:
    number: int
    description: str
    map_image_url: Optional[str] = None
    trader_present: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DungeonFloor":
        return cls(
            number=int_value(payload.get("floor"), 1),
            description=text_value(payload.get("description"), "Darkness stretches ahead."),
            map_image_url=text_value(payload.get("mapImageUrl")) or None,
            trader_present=bool(payload.get("spawnBarterer")),
        )


@dataclass(frozen=True)
class ExploreState:
    user_id: int
    floor: DungeonFloor


def explore_actions(floor: DungeonFloor) -> tuple[ActionSpec, ...]:
    actions = [ActionSpec("next", "⬇️ Descend Further", "primary")]
    if floor.trader_present:
        actions.append(ActionSpec("barter", "🛒 Barter with Trader", "success"))
    return tuple(actions)


class ExploreRenderer(SessionRenderer[ExploreState]):
    expired_notice = "⌛ The echoes in the dungeon grow silent…"
    failure_notice = "❌ An error occurred while exploring. Please try again later."

    def render(self, state: ExploreState, actions: Sequence[ActionSpec]) -> DisplayPayload:
        floor = state.floor
        return DisplayPayload(
            title=f"🗺️ Dungeon Floor {floor.number}",
            body=floor.description,
            colour=EXPLORE_COLOUR,
            image_url=floor.map_image_url,
        )


class ExploreFlow:
    """Floor after floor; choosing the trader hands the message to :class:`BarterFlow`."""

    name = "explore"

    def __init__(
        self,
        gateway: BackendGateway,
        barter: BarterFlow,
        *,
        ttl: float = EXPLORE_TTL,
    ) -> None:
        self.gateway = gateway
        self.barter = barter
        self.ttl = ttl
        self.renderer = ExploreRenderer()

    async def descend(self, user_id: int) -> Union[DungeonFloor, Terminal]:
        data = as_mapping(await self.gateway.post(GENERATE_PATH, {"user_id": str(user_id)}))
        if not data.get("success"):
            return rejection(data, "description", "error", fallback="Unable to generate dungeon.")
        return DungeonFloor.from_payload(data)

    async def prepare(self, user_id: int) -> Union[SessionPlan[ExploreState], Terminal]:
        floor = await self.descend(user_id)
        if isinstance(floor, Terminal):
            return floor
        return SessionPlan(
            name=self.name,
            owner_id=user_id,
            state=ExploreState(user_id=user_id, floor=floor),
            actions=explore_actions(floor),
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def step(self, state: ExploreState, response: InteractionResponse) -> StepResult:
        if response.choice_id == "barter":
            opening = await self.barter.prepare(state.user_id)
            if isinstance(opening, Terminal):
                return opening
            return Chain(opening)
        floor = await self.descend(state.user_id)
        if isinstance(floor, Terminal):
            return floor
        return Continue(ExploreState(user_id=state.user_id, floor=floor), explore_actions(floor))
