"""discord.py adapter for the session engine.

Turns :class:`DisplayPayload` objects into embeds and button views, binds
sessions to interaction replies and relays button presses to the broker.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Sequence, Union

import discord

from .engine import (
    GENERIC_FAILURE_NOTICE,
    ActionKind,
    ActionSpec,
    DispatchStatus,
    DisplayPayload,
    InteractionBroker,
    InteractionResponse,
    Session,
    SessionController,
    SessionPlan,
    SessionSurface,
    StepResult,
    Terminal,
    launch,
    make_custom_id,
)
from .gateway import GatewayError

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from bot import DescentBot


log = logging.getLogger(__name__)

NOT_OWNER_NOTICE = "This prompt belongs to another adventurer."
ERROR_COLOUR = 0xFF0000

BUTTON_STYLES: dict[ActionKind, discord.ButtonStyle] = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
}

Opening = Union[SessionPlan, StepResult]


def build_embed(payload: DisplayPayload) -> Optional[discord.Embed]:
    if not payload.has_embed:
        return None
    embed = discord.Embed(
        title=payload.title,
        description=payload.body,
        colour=payload.colour,
        timestamp=discord.utils.utcnow(),
    )
    for field in payload.fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)
    if payload.image_url:
        embed.set_image(url=payload.image_url)
    if payload.thumbnail_url:
        embed.set_thumbnail(url=payload.thumbnail_url)
    if payload.footer:
        embed.set_footer(text=payload.footer)
    return embed


class SessionView(discord.ui.View):
    """Buttons for the actions a session currently presents."""

    def __init__(self, broker: InteractionBroker, actions: Sequence[ActionSpec]) -> None:
        super().__init__(timeout=None)
        self.broker = broker
        for action in actions:
            self._add_action_button(action)

    def _add_action_button(self, action: ActionSpec) -> None:
        button = discord.ui.Button(
            label=action.label,
            style=BUTTON_STYLES.get(action.kind, discord.ButtonStyle.primary),
            custom_id=make_custom_id(action.id),
            disabled=action.disabled,
        )
        button.callback = self._make_callback(action.id)
        self.add_item(button)

    def _make_callback(self, choice_id: str) -> Callable[[discord.Interaction], Awaitable[None]]:
        async def _callback(interaction: discord.Interaction) -> None:
            await relay(self.broker, interaction, choice_id)

        return _callback


class InteractionSurface(SessionSurface):
    """Session surface backed by the (deferred) reply to a slash command."""

    def __init__(self, interaction: discord.Interaction, broker: InteractionBroker) -> None:
        self.interaction = interaction
        self.broker = broker
        self.message_id: Optional[int] = None
        self.view: Optional[SessionView] = None

    async def show(self, payload: DisplayPayload) -> int:
        # The view store is keyed by message and custom id, so the old view
        # has to leave it before a replacement with the same ids is stored.
        if self.view is not None:
            self.view.stop()
        view = SessionView(self.broker, payload.actions) if payload.actions else None
        if view is not None and all(action.disabled for action in payload.actions):
            # A finished view is drawn but never stored.
            view.stop()
        self.view = view
        message = await self.interaction.edit_original_response(
            content=payload.notice,
            embed=build_embed(payload),
            view=view,
        )
        self.message_id = message.id
        return message.id


async def relay(
    broker: InteractionBroker, interaction: discord.Interaction, choice_id: str
) -> DispatchStatus:
    """Forward a button press to the broker and acknowledge it."""

    message = interaction.message
    if message is None:
        status: DispatchStatus = "unmatched"
    else:
        response = InteractionResponse(
            session_id=message.id,
            actor_id=interaction.user.id,
            choice_id=choice_id,
            timestamp=interaction.created_at,
        )
        status = await broker.dispatch(response)

    try:
        if status == "unauthorized":
            await interaction.response.send_message(NOT_OWNER_NOTICE, ephemeral=True)
        elif not interaction.response.is_done():
            await interaction.response.defer()
    except discord.HTTPException:
        log.debug("Could not acknowledge button press %r", choice_id, exc_info=True)
    return status


class ErrorReporter:
    """Log failures and mirror them to the configured error channel."""

    def __init__(self, client: discord.Client, channel_id: Optional[int] = None) -> None:
        self.client = client
        self.channel_id = channel_id

    async def __call__(
        self,
        exc: BaseException,
        session: Optional[Session] = None,
        *,
        context: Optional[str] = None,
    ) -> None:
        where = context or (f"session {session.session_id}" if session is not None else "bot")
        log.error("Unhandled error in %s", where, exc_info=exc)
        if self.channel_id is None:
            return
        channel = await self._resolve_channel()
        if channel is None:
            return
        try:
            await channel.send(embed=self.build_embed(exc, where))
        except discord.HTTPException:
            log.error("Failed to send error message to log channel %s", self.channel_id, exc_info=True)

    @staticmethod
    def build_embed(exc: BaseException, where: str) -> discord.Embed:
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        # Embed descriptions are capped at 4096 characters.
        trace = trace[-3900:]
        return discord.Embed(
            title=f"⚠️ Error in {where}",
            description=f"```{trace}```",
            colour=ERROR_COLOUR,
            timestamp=discord.utils.utcnow(),
        )

    async def _resolve_channel(self) -> Optional[discord.abc.Messageable]:
        assert self.channel_id is not None
        channel = self.client.get_channel(self.channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(self.channel_id)
            except discord.HTTPException:
                log.warning("Error log channel %s is not reachable", self.channel_id)
                return None
        if not isinstance(channel, discord.abc.Messageable):
            log.warning("Error log channel %s cannot receive messages", self.channel_id)
            return None
        return channel


async def send_notice(interaction: discord.Interaction, message: str, *, ephemeral: bool = True) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=ephemeral)
    else:
        await interaction.response.send_message(message, ephemeral=ephemeral)


async def open_session(
    bot: "DescentBot",
    interaction: discord.Interaction,
    prepare: Callable[[], Awaitable[Opening]],
    *,
    ephemeral: bool = False,
    failure_notice: str = GENERIC_FAILURE_NOTICE,
) -> Optional[SessionController]:
    """Defer the command, prepare the opening and start a session on the reply."""

    if not interaction.response.is_done():
        await interaction.response.defer(thinking=True, ephemeral=ephemeral)
    surface = InteractionSurface(interaction, bot.broker)
    try:
        opening = await prepare()
    except GatewayError as exc:
        await bot.reporter(exc, None, context=f"/{_command_name(interaction)}")
        await surface.show(DisplayPayload(notice=failure_notice))
        return None
    return await launch(bot.sessions, surface, opening, reporter=bot.reporter)


def _command_name(interaction: discord.Interaction) -> str:
    command = interaction.command
    return command.qualified_name if command is not None else "command"


async def respond(
    bot: "DescentBot",
    interaction: discord.Interaction,
    produce: Callable[[], Awaitable[object]],
    *,
    ephemeral: bool = False,
    failure_notice: str = GENERIC_FAILURE_NOTICE,
) -> None:
    """Answer a command with a single message and no controls."""

    async def _opening() -> Terminal:
        return Terminal(await produce())

    await open_session(bot, interaction, _opening, ephemeral=ephemeral, failure_notice=failure_notice)
