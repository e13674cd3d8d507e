"""Account commands: starting out, balance, profile and model previews."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.commands import (
    BALANCE_FAILURE,
    PREVIEW_FAILURE,
    START_FAILURE,
    STATS_FAILURE,
    GameCommands,
)
from descent.discord_ui import respond

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class AdventureCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self.game = GameCommands(bot.gateway)

    @app_commands.command(name="start", description="🚀 Start a new dungeon-crawling adventure")
    async def start(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        await respond(
            self.bot,
            interaction,
            lambda: self.game.start_adventure(user_id),
            failure_notice=START_FAILURE,
        )

    @app_commands.command(name="balance", description="💰 View your current gold and rank")
    async def balance(self, interaction: discord.Interaction) -> None:
        user = interaction.user
        await respond(
            self.bot,
            interaction,
            lambda: self.game.balance(user.id, user.display_name),
            failure_notice=BALANCE_FAILURE,
        )

    @app_commands.command(name="stats", description="📊 View your character stats and equipped items")
    async def stats(self, interaction: discord.Interaction) -> None:
        user = interaction.user
        await respond(
            self.bot,
            interaction,
            lambda: self.game.stats(user.id, user.display_name),
            failure_notice=STATS_FAILURE,
        )

    @app_commands.command(name="preview", description="🔍 Preview a 3D model by its ID")
    @app_commands.describe(model_id="The ID of the model to preview (e.g., goblin_v01)")
    async def preview(self, interaction: discord.Interaction, model_id: str) -> None:
        user_id = interaction.user.id
        await respond(
            self.bot,
            interaction,
            lambda: self.game.preview(user_id, model_id),
            failure_notice=PREVIEW_FAILURE,
        )


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(AdventureCog(bot))
