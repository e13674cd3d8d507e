"""Private inventory browsing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.discord_ui import open_session
from descent.flows import InventoryFlow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class InventoryCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self.flow = InventoryFlow(bot.gateway)

    @app_commands.command(name="inventory", description="🎒 View your items")
    async def inventory(self, interaction: discord.Interaction) -> None:
        user = interaction.user
        await open_session(
            self.bot,
            interaction,
            lambda: self.flow.prepare(user.id, user.display_name),
            ephemeral=True,
            failure_notice=self.flow.renderer.failure_notice,
        )


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(InventoryCog(bot))
