"""Presence and last-resort error handling for application commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.discord_ui import send_notice
from descent.engine import GENERIC_FAILURE_NOTICE

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


log = logging.getLogger(__name__)

PRESENCE = "Eternity’s Descent"


class DiagnosticsCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self._previous_handler = bot.tree.on_error
        bot.tree.on_error = self.on_app_command_error

    def cog_unload(self) -> None:
        self.bot.tree.on_error = self._previous_handler

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        user = self.bot.user
        log.info("Logged in as %s (ID: %s)", user, user.id if user else "?")
        try:
            await self.bot.change_presence(activity=discord.Game(name=PRESENCE))
        except discord.HTTPException:
            log.exception("Failed to set presence")
        else:
            log.info("Presence set: Playing %s", PRESENCE)

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await send_notice(interaction, "You cannot use this command here.")
            return
        original = getattr(error, "original", error)
        command = interaction.command
        name = command.qualified_name if command is not None else "unknown command"
        await self.bot.reporter(original, context=f"/{name}")
        try:
            if interaction.response.is_done():
                await interaction.edit_original_response(content=GENERIC_FAILURE_NOTICE, embed=None, view=None)
            else:
                await interaction.response.send_message(GENERIC_FAILURE_NOTICE, ephemeral=True)
        except discord.HTTPException:
            log.debug("Could not tell the user about the failure in /%s", name, exc_info=True)


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(DiagnosticsCog(bot))
