"""Command listing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

import discord
from discord import app_commands
from discord.ext import commands

from descent.commands import build_help
from descent.discord_ui import build_embed

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


def iter_command_entries(
    items: "list[app_commands.Command | app_commands.Group]",
) -> Iterator[tuple[str, str]]:
    for item in items:
        if isinstance(item, app_commands.Group):
            yield from iter_command_entries(item.commands)
        else:
            yield item.qualified_name, item.description


class HelpCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot

    @app_commands.command(name="help", description="❓ Show all available commands and how to use them")
    async def show_help(self, interaction: discord.Interaction) -> None:
        top_level = [
            command
            for command in self.bot.tree.get_commands(type=discord.AppCommandType.chat_input)
            if isinstance(command, (app_commands.Command, app_commands.Group))
        ]
        payload = build_help(iter_command_entries(top_level))
        embed = build_embed(payload)
        assert embed is not None
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(HelpCog(bot))
