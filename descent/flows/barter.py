"""The wandering trader who sometimes waits between dungeon floors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from descent.engine import (
    ActionSpec,
    DisplayField,
    DisplayPayload,
    InteractionResponse,
    SessionPlan,
    SessionRenderer,
    StepResult,
    Terminal,
)
from descent.gateway import BackendGateway

from .common import as_mapping, as_sequence, format_coins, int_value, rejection, text_value

__all__ = ["BARTER_TTL", "BarterFlow", "BarterRenderer", "BarterState", "TraderItem"]

BARTER_TTL = 60.0
ENCOUNTER_PATH = "/barterer/encounter"
BUY_PATH = "/barterer/buy"
BARTER_COLOUR = 0x00A8FF
BUY_PREFIX = "buy:"
# Discord allows 25 components per message; one slot is kept for "Skip".
MAX_WARES = 24


@dataclass(frozen=True)
class TraderItem:
    id: str
    name: str
    price: int
    description: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TraderItem":
        item_id = text_value(payload.get("id"))
        return cls(
            id=item_id,
            name=text_value(payload.get("name"), item_id or "Mysterious item"),
            price=int_value(payload.get("price")),
            description=text_value(payload.get("description"), "\u200b"),
        )


@dataclass(frozen=True)
class BarterState:
    user_id: int
    wares: tuple[TraderItem, ...]

    def find(self, item_id: str) -> TraderItem | None:
        return next((item for item in self.wares if item.id == item_id), None)


def barter_actions(wares: Sequence[TraderItem]) -> tuple[ActionSpec, ...]:
    actions = [
        ActionSpec(f"{BUY_PREFIX}{item.id}", f"Buy {item.name}"[:80], "primary")
        for item in wares
    ]
    actions.append(ActionSpec("skip", "Skip Trader", "secondary"))
    return tuple(actions)


class BarterRenderer(SessionRenderer[BarterState]):
    failure_notice = "❌ There was an error processing your purchase."

    def render(self, state: BarterState, actions: Sequence[ActionSpec]) -> DisplayPayload:
        fields = tuple(
            DisplayField(f"{item.name} — {format_coins(item.price)}", item.description)
            for item in state.wares
        )
        return DisplayPayload(
            title="🔹 A Wandering Trader Appears!",
            body="He offers the following items for sale:",
            colour=BARTER_COLOUR,
            fields=fields,
        )

    def render_expired(self, state: BarterState, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return DisplayPayload(notice="⌛ Time’s up – the trader has packed up and left.")


class BarterFlow:
    name = "barter"

    def __init__(self, gateway: BackendGateway, *, ttl: float = BARTER_TTL) -> None:
        self.gateway = gateway
        self.ttl = ttl
        self.renderer = BarterRenderer()

    async def prepare(self, user_id: int) -> Union[SessionPlan[BarterState], Terminal]:
        data = as_mapping(await self.gateway.get(ENCOUNTER_PATH, {"user_id": str(user_id)}))
        wares = tuple(
            item
            for item in (TraderItem.from_payload(as_mapping(raw)) for raw in as_sequence(data.get("items")))
            if item.id
        )[:MAX_WARES]
        if not data.get("spawn") or not wares:
            return Terminal("😕 No wandering trader showed up this floor.")
        return SessionPlan(
            name=self.name,
            owner_id=user_id,
            state=BarterState(user_id=user_id, wares=wares),
            actions=barter_actions(wares),
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def step(self, state: BarterState, response: InteractionResponse) -> StepResult:
        if response.choice_id == "skip":
            return Terminal("🕶️ You decided to skip the trader.")
        item_id = response.choice_id[len(BUY_PREFIX):]
        listed = state.find(item_id)
        data = as_mapping(
            await self.gateway.post(BUY_PATH, {"user_id": str(state.user_id), "item_id": item_id})
        )
        if not data.get("success"):
            return rejection(data, "error", fallback="The trader refuses the deal.")
        bought = as_mapping(data.get("item"))
        name = text_value(bought.get("name"), listed.name if listed else item_id)
        price = int_value(bought.get("price"), listed.price if listed else 0)
        return Terminal(f"✅ You purchased **{name}** for {format_coins(price)}!")
