"""Combat rounds resolved one click at a time by the game service."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Sequence, Union

from descent.engine import (
    ActionSpec,
    Continue,
    DisplayField,
    DisplayPayload,
    InteractionResponse,
    SessionPlan,
    SessionRenderer,
    StepResult,
    Terminal,
)
from descent.gateway import BackendGateway

from .common import as_mapping, as_sequence, int_value, rejection, text_value

__all__ = ["COMBAT_TTL", "CombatFlow", "CombatRenderer", "CombatRound", "CombatState", "LootDrop"]

COMBAT_TTL = 60.0
RESOLVE_PATH = "/combat/resolve"
COMBAT_COLOUR = 0xE74C3C


@dataclass(frozen=True)
class LootDrop:
    name: str
    quantity: int = 1


@dataclass(frozen=True)
class CombatRound:
    """Outcome of one round as decided by the service."""

    narrative: str
    player_hp: int
    player_max_hp: int
    enemy_hp: int
    enemy_max_hp: int
    finished: bool = False
    loot: tuple[LootDrop, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CombatRound":
        loot = tuple(
            LootDrop(
                name=text_value(entry.get("name"), "Unknown item"),
                quantity=int_value(entry.get("qty"), 1),
            )
            for entry in (as_mapping(raw) for raw in as_sequence(payload.get("loot")))
        )
        return cls(
            narrative=text_value(payload.get("message"), "The clash continues."),
            player_hp=int_value(payload.get("playerHp")),
            player_max_hp=int_value(payload.get("playerMaxHp")),
            enemy_hp=int_value(payload.get("enemyHp")),
            enemy_max_hp=int_value(payload.get("enemyMaxHp")),
            finished=bool(payload.get("combatEnd")),
            loot=loot,
        )


@dataclass(frozen=True)
class CombatState:
    user_id: int
    latest: CombatRound
    rounds: int = 1


def combat_actions(latest: CombatRound) -> tuple[ActionSpec, ...]:
    if latest.finished:
        return (ActionSpec("next", "🔄 Next Encounter", "primary"),)
    return (ActionSpec("next", "⚔️ Next Round", "danger"),)


class CombatRenderer(SessionRenderer[CombatState]):
    def render(self, state: CombatState, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return self.render_round(state.latest)

    @staticmethod
    def render_round(latest: CombatRound) -> DisplayPayload:
        fields = [
            DisplayField("🛡️ You", f"{latest.player_hp} / {latest.player_max_hp} HP", inline=True),
            DisplayField("👹 Enemy", f"{latest.enemy_hp} / {latest.enemy_max_hp} HP", inline=True),
        ]
        if latest.finished and latest.loot:
            lines = [f"• **{drop.name}** x{drop.quantity}" for drop in latest.loot]
            fields.append(DisplayField("🎁 Loot Acquired", "\n".join(lines)))
        return DisplayPayload(
            title="⚔️ Combat Round",
            body=latest.narrative,
            colour=COMBAT_COLOUR,
            fields=tuple(fields),
        )


class CombatFlow:
    """Each click asks the service to resolve the next round."""

    name = "combat"

    def __init__(self, gateway: BackendGateway, *, ttl: float = COMBAT_TTL) -> None:
        self.gateway = gateway
        self.ttl = ttl
        self.renderer = CombatRenderer()

    async def resolve(self, user_id: int) -> Union[CombatRound, Terminal]:
        data = as_mapping(await self.gateway.post(RESOLVE_PATH, {"user_id": str(user_id)}))
        if not data.get("success"):
            return rejection(data, "message", fallback="Combat could not be resolved.")
        return CombatRound.from_payload(data)

    async def prepare(self, user_id: int) -> Union[SessionPlan[CombatState], Terminal]:
        result = await self.resolve(user_id)
        if isinstance(result, Terminal):
            return result
        return SessionPlan(
            name=self.name,
            owner_id=user_id,
            state=CombatState(user_id=user_id, latest=result),
            actions=combat_actions(result),
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def step(self, state: CombatState, response: InteractionResponse) -> StepResult:
        result = await self.resolve(state.user_id)
        if isinstance(result, Terminal):
            return result
        return Continue(
            replace(state, latest=result, rounds=state.rounds + 1),
            combat_actions(result),
        )
