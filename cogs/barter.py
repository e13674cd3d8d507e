"""The wandering trader, reachable directly as well as from /explore."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.discord_ui import open_session
from descent.flows import BarterFlow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class BarterCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self.flow = BarterFlow(bot.gateway)

    @app_commands.command(name="barter", description="🛒 Encounter the wandering trader")
    async def barter(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        await open_session(
            self.bot,
            interaction,
            lambda: self.flow.prepare(user_id),
            failure_notice="❌ Could not reach the trader. Please try again later.",
        )


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(BarterCog(bot))
