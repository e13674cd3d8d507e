"""Campaign narrative."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.discord_ui import open_session
from descent.flows import StoryFlow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class StoryCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self.flow = StoryFlow(bot.gateway)

    @app_commands.command(name="story", description="📖 Advance the campaign narrative")
    async def story(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        await open_session(
            self.bot,
            interaction,
            lambda: self.flow.prepare(user_id),
            failure_notice="❌ Could not advance the story. Please try again later.",
        )


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(StoryCog(bot))
