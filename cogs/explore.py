"""Dungeon descent, with the wandering trader as a detour."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.discord_ui import open_session
from descent.flows import BarterFlow, ExploreFlow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class ExploreCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self.flow = ExploreFlow(bot.gateway, BarterFlow(bot.gateway))

    @app_commands.command(name="explore", description="🗺️ Descend to the next dungeon floor")
    async def explore(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        await open_session(
            self.bot,
            interaction,
            lambda: self.flow.prepare(user_id),
            failure_notice=self.flow.renderer.failure_notice,
        )


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(ExploreCog(bot))
