"""Single-reply commands: account, economy, forging and previews.

None of these keep a session open; each call performs one service request
and returns the payload to show.
"""

from __future__ import annotations

import uuid
from typing import Any, Iterable, Mapping, Optional, Sequence

from .engine import DisplayField, DisplayPayload
from .flows.common import as_mapping, as_sequence, format_coins, int_value, text_value
from .gateway import BackendGateway

__all__ = ["GameCommands", "InvalidInput", "build_help", "parse_quantity", "parse_traits"]

# Discord embeds hold at most 25 fields.
MAX_FIELDS = 25

START_FAILURE = "❌ Failed to start a new adventure. Please try again later."
BALANCE_FAILURE = "❌ Sorry, I couldn’t fetch your balance right now. Please try again later."
STATS_FAILURE = "❌ An error occurred while fetching your profile. Please try again later."
SHOP_LIST_FAILURE = "❌ Could not load shop items. Please try again later."
SHOP_BUY_FAILURE = "❌ Purchase failed. Please try again later."
FORGE_FAILURE = "❌ Error forging item. Please try again later."
PREVIEW_FAILURE = "❌ Failed to fetch model preview. Please try again later."
TRADE_FAILURE = "❌ An error occurred while processing the trade. Please try again later."


class InvalidInput(ValueError):
    """Raised when user supplied command input cannot be used."""


def parse_traits(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [trait.strip() for trait in raw.split(",") if trait.strip()]


def parse_quantity(raw: Optional[str]) -> int:
    try:
        quantity = int(str(raw).strip())
    except (TypeError, ValueError):
        quantity = 0
    if quantity < 1:
        raise InvalidInput("Quantity must be a positive integer.")
    return quantity


def _failed(data: Mapping[str, Any], prefix: str, fallback: str) -> DisplayPayload:
    message = text_value(data.get("error"), fallback)
    return DisplayPayload(notice=f"❌ {prefix}{message}")


class GameCommands:
    """Service calls behind the commands that answer with a single message."""

    def __init__(self, gateway: BackendGateway) -> None:
        self.gateway = gateway

    async def start_adventure(self, user_id: int, *, correlation_id: Optional[str] = None) -> DisplayPayload:
        data = as_mapping(
            await self.gateway.post(
                "/sessions/create",
                {
                    "user_id": str(user_id),
                    "correlation_id": correlation_id or str(uuid.uuid4()),
                },
            )
        )
        return DisplayPayload(
            title="🎉 Adventure Started!",
            body="Your journey begins now, good luck!",
            colour=0x00FFAA,
            fields=(
                DisplayField("Session ID", f"`{text_value(data.get('session_id'), '?')}`"),
                DisplayField("Dungeon Level", str(int_value(data.get("dungeon_level"), 1)), inline=True),
                DisplayField("XP", str(int_value(data.get("xp"))), inline=True),
                DisplayField("Gold", format_coins(data.get("gold")), inline=True),
            ),
        )

    async def balance(self, user_id: int, display_name: str) -> DisplayPayload:
        data = as_mapping(await self.gateway.get("/economy/balance", {"user_id": str(user_id)}))
        fields = [
            DisplayField("Gold", format_coins(data.get("gold")), inline=True),
            DisplayField("Rank", f"**{text_value(data.get('rank'), 'Unranked')}**", inline=True),
        ]
        next_rank = data.get("nextRankXp")
        if isinstance(next_rank, (int, float)) and not isinstance(next_rank, bool):
            fields.append(
                DisplayField(
                    "Progress to Next Rank",
                    f"{int_value(data.get('xp')):,} / {int(next_rank):,} XP",
                )
            )
        return DisplayPayload(
            title=f"{display_name}’s Balance",
            colour=0xFFD700,
            fields=tuple(fields),
        )

    async def stats(self, user_id: int, display_name: str) -> DisplayPayload:
        data = as_mapping(await self.gateway.get("/player/stats", {"user_id": str(user_id)}))
        if not data.get("success"):
            return DisplayPayload(notice="❌ Could not load your stats. Please try again later.")
        fields = [
            DisplayField("Rank", f"**{text_value(data.get('rank'), 'Unranked')}**", inline=True),
            DisplayField(
                "XP",
                f"{int_value(data.get('xp')):,} / {int_value(data.get('nextRankXp')):,}",
                inline=True,
            ),
        ]
        for key, value in as_mapping(data.get("stats")).items():
            fields.append(DisplayField(str(key)[:1].upper() + str(key)[1:], str(value), inline=True))
        fields = fields[: MAX_FIELDS - 1]
        lines = []
        for raw in as_sequence(data.get("equipment")):
            piece = as_mapping(raw)
            status = " (Equipped)" if piece.get("isEquipped") else ""
            lines.append(
                f"**{text_value(piece.get('slot'), 'Gear')}:** {text_value(piece.get('name'), '?')}{status}"
            )
        fields.append(DisplayField("🗡️ Equipment", "\n".join(lines) if lines else "_No items equipped._"))
        return DisplayPayload(
            title=f"{display_name}’s Character Profile",
            colour=0x3498DB,
            fields=tuple(fields),
        )

    async def shop_items(self) -> DisplayPayload:
        items = as_sequence(await self.gateway.get("/economy/shop/items"))
        if not items:
            return DisplayPayload(notice="🛒 The shop is currently empty.")
        fields = []
        for raw in items[:MAX_FIELDS]:
            item = as_mapping(raw)
            fields.append(
                DisplayField(
                    f"**{text_value(item.get('name'), '?')}** (`{text_value(item.get('id'), '?')}`)",
                    f"{text_value(item.get('description'))}\n**Price:** {format_coins(item.get('price'))}",
                )
            )
        return DisplayPayload(
            title="🛒 Item Shop",
            body="Browse items available for purchase:",
            colour=0x00AA88,
            fields=tuple(fields),
        )

    async def buy(self, user_id: int, item_id: str) -> DisplayPayload:
        data = as_mapping(
            await self.gateway.post("/economy/shop/buy", {"user_id": str(user_id), "item_id": item_id})
        )
        if not data.get("success"):
            return _failed(data, "", "The purchase was declined.")
        item = as_mapping(data.get("item"))
        return DisplayPayload(
            title="✅ Purchase Successful",
            body=f"You purchased **{text_value(item.get('name'), item_id)}** (x{int_value(item.get('quantity'), 1)})",
            colour=0x00CC66,
            fields=(
                DisplayField("Item ID", f"`{text_value(item.get('id'), item_id)}`", inline=True),
                DisplayField("Cost", format_coins(item.get("price")), inline=True),
                DisplayField("Balance", format_coins(data.get("balance")), inline=True),
            ),
            thumbnail_url=text_value(item.get("iconUrl")) or None,
        )

    async def forge(
        self,
        user_id: int,
        item_id: str,
        traits: Sequence[str],
        quantity: int,
    ) -> DisplayPayload:
        data = as_mapping(
            await self.gateway.post(
                "/item/forgeItem",
                {
                    "user_id": str(user_id),
                    "item_id": item_id,
                    "traits": list(traits),
                    "quantity": quantity,
                },
            )
        )
        if not data.get("success"):
            return _failed(data, "Could not forge item: ", "the forge refused.")
        forged = as_mapping(data.get("forgedItem"))
        return DisplayPayload(
            title="🔨 Forge Successful",
            colour=0x228B22,
            fields=(
                DisplayField("Item", f"**{text_value(forged.get('name'), item_id)}** (x{quantity})"),
                DisplayField("Cost", format_coins(data.get("cost")), inline=True),
                DisplayField("Traits", ", ".join(traits) if traits else "None", inline=True),
            ),
        )

    async def preview(self, user_id: int, model_id: str) -> DisplayPayload:
        data = as_mapping(
            await self.gateway.get("/model/preview", {"user_id": str(user_id), "model_id": model_id})
        )
        if not data.get("success"):
            return _failed(data, "Could not generate preview: ", "Unknown error.")
        name = text_value(data.get("name"), model_id)
        return DisplayPayload(
            title=f"🔍 Preview: {name}",
            body=f"Here is the 3D preview for **{name}** (ID: `{model_id}`)",
            colour=0x7289DA,
            image_url=text_value(data.get("url")) or None,
        )


def build_help(entries: Iterable[tuple[str, str]]) -> DisplayPayload:
    """Render the command list from ``(qualified name, description)`` pairs."""

    fields = tuple(
        DisplayField(f"/{name}", description or "\u200b")
        for name, description in sorted(entries)
    )[:MAX_FIELDS]
    return DisplayPayload(
        title="📖 Command List",
        body="Here are all the commands you can use:",
        colour=0x0099FF,
        fields=fields,
    )

