"""Gacha rolls that spend gold on a random power."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

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

from .common import as_mapping, format_coins, int_value, rejection, text_value

__all__ = ["ROLL_COST", "ROLL_TTL", "RollFlow", "RollRenderer", "RollReward", "RollState"]

ROLL_COST = 100
ROLL_TTL = 30.0
ROLL_PATH = "/gacha/rollPower"

ROLL_ACTIONS = (
    ActionSpec("confirm", "Confirm Roll", "primary"),
    ActionSpec("cancel", "Cancel", "secondary"),
)


@dataclass(frozen=True)
class RollState:
    user_id: int
    cost: int = ROLL_COST


@dataclass(frozen=True)
class RollReward:
    name: str
    rarity: str
    balance: int
    image_url: Optional[str] = None


class RollRenderer(SessionRenderer[RollState]):
    expired_notice = "⌛ Time expired — roll canceled."
    clear_on_expiry = True
    failure_notice = "❌ An error occurred while rolling. Please try again later."

    def render(self, state: RollState, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return DisplayPayload(
            title="🎲 Gacha Roll",
            body=f"This roll costs **{format_coins(state.cost)}**. Do you want to proceed?",
            colour=0xFFA500,
        )

    def render_final(self, outcome: object) -> DisplayPayload:
        if not isinstance(outcome, RollReward):
            return super().render_final(outcome)
        return DisplayPayload(
            title="🎉 Roll Result",
            colour=0x00FF00,
            fields=(
                DisplayField("You received", f"**{outcome.name}**"),
                DisplayField("Rarity", outcome.rarity, inline=True),
                DisplayField("Your New Balance", format_coins(outcome.balance), inline=True),
            ),
            image_url=outcome.image_url,
        )


class RollFlow:
    name = "roll"

    def __init__(
        self,
        gateway: BackendGateway,
        *,
        cost: int = ROLL_COST,
        ttl: float = ROLL_TTL,
    ) -> None:
        self.gateway = gateway
        self.cost = cost
        self.ttl = ttl
        self.renderer = RollRenderer()

    async def prepare(self, user_id: int) -> SessionPlan[RollState]:
        return SessionPlan(
            name=self.name,
            owner_id=user_id,
            state=RollState(user_id=user_id, cost=self.cost),
            actions=ROLL_ACTIONS,
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def step(self, state: RollState, response: InteractionResponse) -> StepResult:
        if response.choice_id == "cancel":
            return Terminal("❌ Roll canceled.")
        data = as_mapping(
            await self.gateway.post(ROLL_PATH, {"user_id": str(state.user_id), "cost": state.cost})
        )
        if not data.get("success"):
            return rejection(data, "error", fallback="The roll could not be completed.")
        reward = as_mapping(data.get("reward"))
        return Terminal(
            RollReward(
                name=text_value(reward.get("name"), "Unknown power"),
                rarity=text_value(reward.get("rarity"), "Unknown"),
                balance=int_value(data.get("balance")),
                image_url=text_value(reward.get("imageUrl")) or None,
            )
        )
