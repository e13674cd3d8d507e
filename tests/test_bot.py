import asyncio
from pathlib import Path

import discord

from bot import DescentBot, get_cog_module_names
from descent import BotConfig

COGS_PATH = Path(__file__).resolve().parent.parent / "cogs"


def test_cog_discovery_skips_private_modules(tmp_path: Path) -> None:
    (tmp_path / "__init__.py").write_text("", encoding="utf-8")
    (tmp_path / "combat.py").write_text("", encoding="utf-8")
    (tmp_path / "roll.py").write_text("", encoding="utf-8")

    assert get_cog_module_names(tmp_path) == ["cogs.combat", "cogs.roll"]


def test_every_command_registers_on_the_tree() -> None:
    async def runner() -> None:
        bot = DescentBot(BotConfig(token="token"))
        try:
            for module_name in get_cog_module_names(COGS_PATH):
                await bot.load_extension(module_name)
            commands = {
                command.qualified_name: command
                for command in bot.tree.get_commands(type=discord.AppCommandType.chat_input)
            }
            assert set(commands) == {
                "balance",
                "barter",
                "combat",
                "explore",
                "forge",
                "help",
                "inventory",
                "preview",
                "roll",
                "shop",
                "start",
                "stats",
                "story",
                "trade",
            }
            trade = commands["trade"]
            assert isinstance(trade, discord.app_commands.Group)
            assert {sub.name for sub in trade.commands} == {"propose", "accept", "cancel"}
        finally:
            await bot.gateway.aclose()

    asyncio.run(runner())

