"""Item shop and the forge."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.commands import (
    FORGE_FAILURE,
    SHOP_BUY_FAILURE,
    SHOP_LIST_FAILURE,
    GameCommands,
    InvalidInput,
    parse_quantity,
    parse_traits,
)
from descent.discord_ui import respond, send_notice

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class ForgeModal(discord.ui.Modal, title="Forge an Item"):
    item_id = discord.ui.TextInput(
        label="Item ID to forge",
        placeholder="e.g., fire_sword",
        max_length=100,
    )
    traits = discord.ui.TextInput(
        label="Traits / Runes (comma-separated)",
        style=discord.TextStyle.paragraph,
        placeholder="e.g., burn, critBoost",
        required=False,
    )
    quantity = discord.ui.TextInput(
        label="Quantity",
        placeholder="e.g., 1",
        max_length=6,
    )

    def __init__(self, cog: "ShopCog") -> None:
        super().__init__()
        self.cog = cog

    async def on_submit(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        try:
            quantity = parse_quantity(self.quantity.value)
        except InvalidInput as exc:
            await send_notice(interaction, f"❌ Error forging item: {exc}")
            return
        item_id = self.item_id.value.strip()
        traits = parse_traits(self.traits.value)
        user_id = interaction.user.id
        await respond(
            self.cog.bot,
            interaction,
            lambda: self.cog.game.forge(user_id, item_id, traits, quantity),
            ephemeral=True,
            failure_notice=FORGE_FAILURE,
        )


class ShopCog(commands.GroupCog, name="shop", description="🛒 Browse and buy items"):
    def __init__(self, bot: "DescentBot") -> None:
        super().__init__()
        self.bot = bot
        self.game = GameCommands(bot.gateway)

    @app_commands.command(name="list", description="List all available items in the shop")
    async def shop_list(self, interaction: discord.Interaction) -> None:
        await respond(
            self.bot,
            interaction,
            self.game.shop_items,
            failure_notice=SHOP_LIST_FAILURE,
        )

    @app_commands.command(name="buy", description="Buy an item from the shop")
    @app_commands.describe(item_id="The ID of the item to purchase")
    async def shop_buy(self, interaction: discord.Interaction, item_id: str) -> None:
        user_id = interaction.user.id
        await respond(
            self.bot,
            interaction,
            lambda: self.game.buy(user_id, item_id),
            failure_notice=SHOP_BUY_FAILURE,
        )


class ForgeCog(commands.Cog):
    def __init__(self, shop: ShopCog) -> None:
        self.shop = shop

    @app_commands.command(name="forge", description="🔨 Forge a new item with optional traits")
    async def forge(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(ForgeModal(self.shop))


async def setup(bot: "DescentBot") -> None:
    shop = ShopCog(bot)
    await bot.add_cog(shop)
    await bot.add_cog(ForgeCog(shop))
