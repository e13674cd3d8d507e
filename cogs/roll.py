"""Gacha rolls."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from descent.discord_ui import open_session
from descent.flows import RollFlow
from descent.flows.common import format_coins
from descent.flows.roll import ROLL_COST

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class RollCog(commands.Cog):
    def __init__(self, bot: "DescentBot") -> None:
        self.bot = bot
        self.flow = RollFlow(bot.gateway)

    @app_commands.command(
        name="roll",
        description=f"🎲 Spend {format_coins(ROLL_COST)} on a random power",
    )
    async def roll(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        await open_session(
            self.bot,
            interaction,
            lambda: self.flow.prepare(user_id),
            failure_notice=self.flow.renderer.failure_notice,
        )


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(RollCog(bot))
