import logging
import sys
from pathlib import Path
from typing import Any

import discord
from discord.ext import commands

from descent import BackendGateway, BotConfig, ConfigError
from descent.discord_ui import ErrorReporter
from descent.engine import InteractionBroker, SessionRegistry


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def get_cog_module_names(cogs_path: Path) -> list[str]:
    module_names: list[str] = []
    for path in sorted(cogs_path.glob("*.py")):
        if path.name.startswith("__"):
            continue
        module_names.append(f"cogs.{path.stem}")
    return module_names


async def load_cogs(bot: commands.Bot, cogs_path: Path) -> None:
    module_names = get_cog_module_names(cogs_path)
    for module_name in module_names:
        await bot.load_extension(module_name)
        logging.info("Loaded cog: %s", module_name)


class DescentBot(commands.Bot):
    """Slash-command only bot that owns the session engine and the service gateway."""

    def __init__(self, config: BotConfig) -> None:
        intents = discord.Intents.default()
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )
        self.config = config
        self._cogs_path = Path(__file__).parent / "cogs"
        self.sessions = SessionRegistry()
        self.broker = InteractionBroker(self.sessions)
        self.gateway = BackendGateway(
            config.service_url,
            timeout=config.request_timeout,
            max_retries=config.request_retries,
            retry_delay=config.request_retry_delay,
        )
        self.reporter = ErrorReporter(self, config.error_log_channel_id)

    async def setup_hook(self) -> None:  # type: ignore[override]
        await load_cogs(self, self._cogs_path)
        logging.info("All cogs loaded")
        if self.config.guild_id is not None:
            guild = discord.Object(id=self.config.guild_id)
            self.tree.copy_global_to(guild=guild)
            synced_commands = await self.tree.sync(guild=guild)
            logging.info("Synced %s application commands to guild %s", len(synced_commands), guild.id)
        else:
            synced_commands = await self.tree.sync()
            logging.info("Synced %s application commands", len(synced_commands))

    async def close(self) -> None:
        aborted = await self.sessions.drain()
        if aborted:
            logging.info("Closed %s active sessions", aborted)
        await self.gateway.aclose()
        await super().close()

    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        exc = sys.exc_info()[1]
        if exc is None:
            await super().on_error(event_method, *args, **kwargs)
            return
        await self.reporter(exc, context=f"event {event_method}")

    def add_command(  # type: ignore[override]
        self, command: commands.Command, *args, **kwargs
    ) -> None:
        raise TypeError("DescentBot does not support prefixed commands.")

    async def process_commands(self, message: discord.Message) -> None:  # type: ignore[override]
        """Override to disable prefix command processing entirely."""
        return


def create_bot(config: BotConfig) -> DescentBot:
    return DescentBot(config)


def main() -> None:
    try:
        config = BotConfig.from_env()
    except ConfigError as exc:
        configure_logging()
        logging.error("%s", exc)
        raise SystemExit(1) from exc
    configure_logging(config.log_level)
    bot = create_bot(config)

    try:
        bot.run(config.token, log_handler=None)
    except KeyboardInterrupt:
        logging.info("Shutting down bot")


if __name__ == "__main__":
    main()
