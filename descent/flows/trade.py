"""Player-to-player trade proposals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence, Union

from descent.engine import (
    ActionSpec,
    DisplayPayload,
    InteractionResponse,
    SessionPlan,
    SessionRenderer,
    StepResult,
    Terminal,
)
from descent.gateway import BackendGateway

from .common import as_mapping, int_value, rejection, text_value

__all__ = ["TRADE_TTL", "TradeFlow", "TradeOffer", "TradeOutcome", "TradeRenderer"]

TRADE_TTL = 120.0
INITIATE_PATH = "/trade/initiate"

TradeDecision = Literal["accept", "cancel"]

TRADE_ACTIONS = (
    ActionSpec("accept", "Accept", "success"),
    ActionSpec("cancel", "Cancel", "danger"),
)


@dataclass(frozen=True)
class TradeOffer:
    trade_id: int
    from_user: int
    to_user: int
    offer_item: str
    offer_quantity: int
    request_item: str
    request_quantity: int


@dataclass(frozen=True)
class TradeOutcome:
    trade_id: int
    accepted: bool


class TradeRenderer(SessionRenderer[TradeOffer]):
    failure_notice = "❌ An error occurred while processing the trade. Please try again later."

    def render(self, state: TradeOffer, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return DisplayPayload(
            title="🤝 Trade Proposal Sent",
            body=(
                f"Trade ID **{state.trade_id}**\n"
                f"<@{state.from_user}> offers **{state.offer_quantity}× {state.offer_item}**\n"
                f"in exchange for **{state.request_quantity}× {state.request_item}** from <@{state.to_user}>"
            ),
            colour=0x00CCFF,
        )

    def render_final(self, outcome: object) -> DisplayPayload:
        if not isinstance(outcome, TradeOutcome):
            return super().render_final(outcome)
        verb = "accepted" if outcome.accepted else "cancelled"
        return DisplayPayload(
            title="✅ Trade Completed" if outcome.accepted else "❌ Trade Cancelled",
            body=f"Trade ID **{outcome.trade_id}** has been {verb}.",
            colour=0x00FF00 if outcome.accepted else 0xFF5555,
        )

    def render_expired(self, state: TradeOffer, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return DisplayPayload(notice="⌛ The trade offer has expired.")


class TradeFlow:
    """The session belongs to the trade's target, who alone may answer it."""

    name = "trade"

    def __init__(self, gateway: BackendGateway, *, ttl: float = TRADE_TTL) -> None:
        self.gateway = gateway
        self.ttl = ttl
        self.renderer = TradeRenderer()

    async def propose(
        self,
        from_user: int,
        to_user: int,
        *,
        item_id: str,
        quantity: int,
        request_item_id: str,
        request_quantity: int,
    ) -> Union[SessionPlan[TradeOffer], Terminal]:
        data = as_mapping(
            await self.gateway.post(
                INITIATE_PATH,
                {
                    "from_user": str(from_user),
                    "to_user": str(to_user),
                    "item_offer": {"item_id": item_id, "quantity": quantity},
                    "item_request": {"item_id": request_item_id, "quantity": request_quantity},
                },
            )
        )
        if not data.get("success"):
            reason = text_value(data.get("error"), "the service declined the offer.")
            return Terminal(f"❌ Could not initiate trade: {reason}")
        offer = TradeOffer(
            trade_id=int_value(data.get("trade_id")),
            from_user=from_user,
            to_user=to_user,
            offer_item=item_id,
            offer_quantity=quantity,
            request_item=request_item_id,
            request_quantity=request_quantity,
        )
        return SessionPlan(
            name=self.name,
            owner_id=to_user,
            state=offer,
            actions=TRADE_ACTIONS,
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def decide(self, user_id: int, trade_id: int, decision: TradeDecision) -> Union[TradeOutcome, Terminal]:
        data = as_mapping(
            await self.gateway.post(f"/trade/{decision}", {"user_id": str(user_id), "trade_id": trade_id})
        )
        if not data.get("success"):
            return rejection(data, "error", fallback=f"Trade {trade_id} could not be updated.")
        return TradeOutcome(trade_id=trade_id, accepted=decision == "accept")

    async def step(self, state: TradeOffer, response: InteractionResponse) -> StepResult:
        decision: TradeDecision = "accept" if response.choice_id == "accept" else "cancel"
        result = await self.decide(response.actor_id, state.trade_id, decision)
        if isinstance(result, Terminal):
            return result
        return Terminal(result)
