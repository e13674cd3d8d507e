"""Paginated inventory browsing."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from descent.engine import (
    ActionSpec,
    Continue,
    DisplayPayload,
    InteractionResponse,
    SessionPlan,
    SessionRenderer,
    StepResult,
    Terminal,
)
from descent.gateway import BackendGateway

from .common import as_mapping, as_sequence, int_value, text_value

__all__ = ["INVENTORY_TTL", "PAGE_SIZE", "InventoryFlow", "InventoryItem", "InventoryPage", "InventoryRenderer"]

INVENTORY_TTL = 120.0
PAGE_SIZE = 10
INVENTORY_PATH = "/item/getInventory"
INVENTORY_COLOUR = 0x00AAFF


@dataclass(frozen=True)
class InventoryItem:
    name: str
    quantity: int = 1
    equipped: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InventoryItem":
        return cls(
            name=text_value(payload.get("name"), "Unknown item"),
            quantity=int_value(payload.get("quantity"), 1),
            equipped=bool(payload.get("isEquipped")),
        )


@dataclass(frozen=True)
class InventoryPage:
    user_id: int
    owner_name: str
    page: int
    total_items: int
    items: tuple[InventoryItem, ...] = ()

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_items / PAGE_SIZE))


def page_actions(page: InventoryPage) -> tuple[ActionSpec, ...]:
    actions: list[ActionSpec] = []
    if page.page > 1:
        actions.append(ActionSpec("prev", "◀️ Previous", "secondary"))
    if page.page < page.total_pages:
        actions.append(ActionSpec("next", "Next ▶️", "secondary"))
    return tuple(actions)


class InventoryRenderer(SessionRenderer[InventoryPage]):
    failure_notice = "❌ Could not load inventory. Please try again later."

    def render(self, state: InventoryPage, actions: Sequence[ActionSpec]) -> DisplayPayload:
        if state.items:
            lines = []
            for item in state.items:
                equipped = " (Equipped)" if item.equipped else ""
                lines.append(f"• **{item.name}** x{item.quantity}{equipped}")
            body = "\n".join(lines)
        else:
            body = "_Your inventory is empty._"
        return DisplayPayload(
            title=f"{state.owner_name}’s Inventory",
            body=body,
            colour=INVENTORY_COLOUR,
            footer=f"Page {state.page} of {state.total_pages}",
        )


class InventoryFlow:
    name = "inventory"

    def __init__(self, gateway: BackendGateway, *, ttl: float = INVENTORY_TTL) -> None:
        self.gateway = gateway
        self.ttl = ttl
        self.renderer = InventoryRenderer()

    async def fetch_page(self, user_id: int, owner_name: str, page: int) -> InventoryPage:
        data = as_mapping(
            await self.gateway.get(
                INVENTORY_PATH,
                {"user_id": str(user_id), "page": page, "pageSize": PAGE_SIZE},
            )
        )
        items = tuple(InventoryItem.from_payload(as_mapping(raw)) for raw in as_sequence(data.get("items")))
        return InventoryPage(
            user_id=user_id,
            owner_name=owner_name,
            page=page,
            total_items=max(0, int_value(data.get("totalItems"), len(items))),
            items=items,
        )

    def _settle(self, page: InventoryPage) -> Union[Continue, Terminal]:
        actions = page_actions(page)
        if not actions:
            return Terminal(self.renderer.render(page, ()))
        return Continue(page, actions)

    async def prepare(self, user_id: int, owner_name: str) -> Union[SessionPlan[InventoryPage], Terminal]:
        page = await self.fetch_page(user_id, owner_name, 1)
        opening = self._settle(page)
        if isinstance(opening, Terminal):
            return opening
        return SessionPlan(
            name=self.name,
            owner_id=user_id,
            state=page,
            actions=opening.actions,
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def step(self, state: InventoryPage, response: InteractionResponse) -> StepResult:
        if response.choice_id == "prev":
            target = max(1, state.page - 1)
        else:
            target = min(state.total_pages, state.page + 1)
        page = await self.fetch_page(state.user_id, state.owner_name, target)
        return self._settle(page)
