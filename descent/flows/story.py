"""Campaign narrative with branching choices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from descent.engine import (
    ActionSpec,
    Continue,
    DisplayPayload,
    InteractionResponse,
    SessionPlan,
    SessionRenderer,
    StepResult,
    Terminal,
)
from descent.gateway import BackendGateway

from .common import as_mapping, as_sequence, rejection, text_value

__all__ = ["STORY_TTL", "NarrativeBeat", "StoryFlow", "StoryRenderer", "StoryState"]

STORY_TTL = 120.0
NARRATIVE_PATH = "/story/progressNarrative"
CHOICE_PREFIX = "choice:"
MAX_OPTIONS = 25


@dataclass(frozen=True)
class NarrativeBeat:
    text: str
    options: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "NarrativeBeat":
        options: list[tuple[str, str]] = []
        for raw in as_sequence(payload.get("options")):
            option = as_mapping(raw)
            option_id = text_value(option.get("id"))
            if not option_id:
                continue
            options.append((option_id, text_value(option.get("label"), option_id)))
        return cls(
            text=text_value(payload.get("narrative"), "The tale pauses."),
            options=tuple(options[:MAX_OPTIONS]),
        )


@dataclass(frozen=True)
class StoryState:
    user_id: int
    beat: NarrativeBeat
    choices: tuple[str, ...] = ()


def story_actions(beat: NarrativeBeat) -> tuple[ActionSpec, ...]:
    return tuple(
        ActionSpec(f"{CHOICE_PREFIX}{option_id}", label[:80], "primary")
        for option_id, label in beat.options
    )


class StoryRenderer(SessionRenderer[StoryState]):
    failure_notice = "❌ An error occurred processing your choice. Please try again later."

    def render(self, state: StoryState, actions: Sequence[ActionSpec]) -> DisplayPayload:
        return self.render_beat(state.beat)

    @staticmethod
    def render_beat(beat: NarrativeBeat) -> DisplayPayload:
        return DisplayPayload(title="📖 Campaign Narrative", body=beat.text, colour=0x8A2BE2)


class StoryFlow:
    name = "story"

    def __init__(self, gateway: BackendGateway, *, ttl: float = STORY_TTL) -> None:
        self.gateway = gateway
        self.ttl = ttl
        self.renderer = StoryRenderer()

    async def advance(self, user_id: int, choice: Optional[str] = None) -> Union[NarrativeBeat, Terminal]:
        payload: dict[str, object] = {"user_id": str(user_id)}
        if choice is not None:
            payload["choice"] = choice
        data = as_mapping(await self.gateway.post(NARRATIVE_PATH, payload))
        if not data.get("success"):
            return rejection(data, "narrative", "error", fallback="Could not advance the story.")
        return NarrativeBeat.from_payload(data)

    async def prepare(self, user_id: int) -> Union[SessionPlan[StoryState], Terminal]:
        beat = await self.advance(user_id)
        if isinstance(beat, Terminal):
            return beat
        if not beat.options:
            return Terminal(self.renderer.render_beat(beat))
        return SessionPlan(
            name=self.name,
            owner_id=user_id,
            state=StoryState(user_id=user_id, beat=beat),
            actions=story_actions(beat),
            step=self.step,
            renderer=self.renderer,
            ttl=self.ttl,
        )

    async def step(self, state: StoryState, response: InteractionResponse) -> StepResult:
        choice = response.choice_id[len(CHOICE_PREFIX):]
        beat = await self.advance(state.user_id, choice)
        if isinstance(beat, Terminal):
            return beat
        if not beat.options:
            return Terminal(self.renderer.render_beat(beat))
        return Continue(
            StoryState(user_id=state.user_id, beat=beat, choices=state.choices + (choice,)),
            story_actions(beat),
        )
