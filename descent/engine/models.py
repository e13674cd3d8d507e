"""Value types shared by the interaction session engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    Generic,
    Literal,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .rendering import SessionRenderer

__all__ = [
    "ActionKind",
    "ActionSpec",
    "Chain",
    "Continue",
    "DispatchStatus",
    "DisplayField",
    "DisplayPayload",
    "InteractionResponse",
    "Session",
    "SessionPlan",
    "SessionStatus",
    "StepFn",
    "StepResult",
    "Terminal",
]

S = TypeVar("S")

ActionKind = Literal["primary", "secondary", "success", "danger"]
SessionStatus = Literal["active", "completed", "expired", "failed"]
DispatchStatus = Literal["accepted", "unauthorized", "stale", "unmatched"]


@dataclass(frozen=True)
class ActionSpec:
    """A presentable choice. ``id`` must be unique within one render."""

    id: str
    label: str
    kind: ActionKind = "primary"
    disabled: bool = False


@dataclass(frozen=True)
class DisplayField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True)
class DisplayPayload:
    """Platform-agnostic description of what a session message shows."""

    title: Optional[str] = None
    body: Optional[str] = None
    colour: Optional[int] = None
    fields: tuple[DisplayField, ...] = ()
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    footer: Optional[str] = None
    notice: Optional[str] = None
    actions: tuple[ActionSpec, ...] = ()

    @property
    def has_embed(self) -> bool:
        return bool(self.title or self.body or self.fields or self.image_url)

    def with_actions(self, actions: Sequence[ActionSpec]) -> "DisplayPayload":
        return replace(self, actions=tuple(actions))

    def with_disabled_actions(self) -> "DisplayPayload":
        return replace(
            self,
            actions=tuple(replace(action, disabled=True) for action in self.actions),
        )


@dataclass(frozen=True)
class InteractionResponse:
    """A user's selection of a presented action, normalised from the platform."""

    session_id: int
    actor_id: int
    choice_id: str
    timestamp: datetime


@dataclass(frozen=True)
class Terminal:
    """Finish the session and show ``outcome`` with no further actions."""

    outcome: object


@dataclass(frozen=True)
class Continue(Generic[S]):
    """Re-render with ``state`` and ``actions`` and wait for another response."""

    state: S
    actions: tuple[ActionSpec, ...]


@dataclass(frozen=True)
class Chain:
    """Hand the bound message over to a different session."""

    delegate: "SessionPlan"


StepResult = Union[Terminal, Continue, Chain]
StepFn = Callable[[S, InteractionResponse], Awaitable[StepResult]]


@dataclass(frozen=True)
class SessionPlan(Generic[S]):
    """Everything one call site supplies to run a session."""

    name: str
    owner_id: int
    state: S
    actions: tuple[ActionSpec, ...]
    step: StepFn
    renderer: "SessionRenderer"
    ttl: float = 60.0


@dataclass
class Session(Generic[S]):
    """Mutable record of one live session, owned by a single controller."""

    session_id: int
    owner_id: int
    state: S
    deadline: datetime
    actions: tuple[ActionSpec, ...] = field(default_factory=tuple)
    status: SessionStatus = "active"

    @property
    def active(self) -> bool:
        return self.status == "active"

    def offers(self, choice_id: str) -> bool:
        return any(
            action.id == choice_id and not action.disabled for action in self.actions
        )
