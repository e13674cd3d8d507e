"""Player-to-player trading."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import discord
from discord import app_commands
from discord.ext import commands

from descent.commands import TRADE_FAILURE
from descent.discord_ui import open_session, respond, send_notice
from descent.engine import DisplayPayload, Terminal
from descent.flows import TradeFlow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


class TradeCog(commands.GroupCog, name="trade", description="🤝 Player-to-player trading commands"):
    def __init__(self, bot: "DescentBot") -> None:
        super().__init__()
        self.bot = bot
        self.flow = TradeFlow(bot.gateway)

    @app_commands.command(name="propose", description="Propose a trade to another player")
    @app_commands.describe(
        target="The user you want to trade with",
        item_id="The ID of the item you offer",
        quantity="Quantity of the offered item",
        request_item_id="The ID of the item you want in return",
        request_quantity="Quantity of the requested item",
    )
    async def trade_propose(
        self,
        interaction: discord.Interaction,
        target: discord.User,
        item_id: str,
        quantity: app_commands.Range[int, 1],
        request_item_id: str,
        request_quantity: app_commands.Range[int, 1],
    ) -> None:
        if target.id == interaction.user.id or target.bot:
            await send_notice(interaction, "Choose another adventurer to trade with.")
            return
        from_user = interaction.user.id
        await open_session(
            self.bot,
            interaction,
            lambda: self.flow.propose(
                from_user,
                target.id,
                item_id=item_id,
                quantity=quantity,
                request_item_id=request_item_id,
                request_quantity=request_quantity,
            ),
            failure_notice=TRADE_FAILURE,
        )

    @app_commands.command(name="accept", description="Accept a pending trade")
    @app_commands.describe(trade_id="The ID of the trade to accept")
    async def trade_accept(self, interaction: discord.Interaction, trade_id: int) -> None:
        await self._decide(interaction, trade_id, "accept")

    @app_commands.command(name="cancel", description="Cancel a pending trade you initiated")
    @app_commands.describe(trade_id="The ID of the trade to cancel")
    async def trade_cancel(self, interaction: discord.Interaction, trade_id: int) -> None:
        await self._decide(interaction, trade_id, "cancel")

    async def _decide(
        self,
        interaction: discord.Interaction,
        trade_id: int,
        decision: Literal["accept", "cancel"],
    ) -> None:
        user_id = interaction.user.id

        async def _produce() -> object:
            result = await self.flow.decide(user_id, trade_id, decision)
            if isinstance(result, Terminal):
                return result.outcome
            if result.accepted:
                return DisplayPayload(notice=f"✅ You have accepted trade **{trade_id}**.")
            return DisplayPayload(notice=f"❌ You have cancelled trade **{trade_id}**.")

        await respond(self.bot, interaction, _produce, failure_notice=TRADE_FAILURE)


async def setup(bot: "DescentBot") -> None:
    await bot.add_cog(TradeCog(bot))
