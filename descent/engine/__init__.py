"""Interaction session engine."""

from .broker import CUSTOM_ID_PREFIX, InteractionBroker, make_custom_id, parse_custom_id
from .controller import ErrorReporter, SessionController, SessionSurface, launch
from .models import (
    ActionKind,
    ActionSpec,
    Chain,
    Continue,
    DispatchStatus,
    DisplayField,
    DisplayPayload,
    InteractionResponse,
    Session,
    SessionPlan,
    SessionStatus,
    StepFn,
    StepResult,
    Terminal,
)
from .registry import RegistrationConflict, SessionRegistry
from .rendering import EXPIRED_NOTICE, GENERIC_FAILURE_NOTICE, SessionRenderer, render_outcome

__all__ = [
    "ActionKind",
    "ActionSpec",
    "CUSTOM_ID_PREFIX",
    "Chain",
    "Continue",
    "DispatchStatus",
    "DisplayField",
    "DisplayPayload",
    "ErrorReporter",
    "EXPIRED_NOTICE",
    "GENERIC_FAILURE_NOTICE",
    "InteractionBroker",
    "InteractionResponse",
    "RegistrationConflict",
    "Session",
    "SessionController",
    "SessionPlan",
    "SessionRegistry",
    "SessionRenderer",
    "SessionStatus",
    "SessionSurface",
    "StepFn",
    "StepResult",
    "Terminal",
    "launch",
    "make_custom_id",
    "parse_custom_id",
    "render_outcome",
]
