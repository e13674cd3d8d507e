"""Route platform response events to the session that owns them."""

from __future__ import annotations

import logging
from typing import Optional

from .models import DispatchStatus, InteractionResponse
from .registry import SessionRegistry

__all__ = ["CUSTOM_ID_PREFIX", "InteractionBroker", "make_custom_id", "parse_custom_id"]

log = logging.getLogger(__name__)

CUSTOM_ID_PREFIX = "descent"


def make_custom_id(choice_id: str) -> str:
    """Return the component token presented for ``choice_id``."""

    return f"{CUSTOM_ID_PREFIX}:{choice_id}"


def parse_custom_id(custom_id: Optional[str]) -> Optional[str]:
    """Return the choice id encoded in ``custom_id`` or ``None`` if it is not ours."""

    if not custom_id:
        return None
    prefix, separator, choice_id = custom_id.partition(":")
    if prefix != CUSTOM_ID_PREFIX or not separator or not choice_id:
        return None
    return choice_id


class InteractionBroker:
    """Demultiplex responses to session controllers by message id.

    Dispatch never waits for a step to run; the controller processes an
    accepted response in its own task so that a slow backend call for one
    session does not hold up delivery to any other.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    async def dispatch(self, response: InteractionResponse) -> DispatchStatus:
        controller = await self.registry.lookup(response.session_id)
        if controller is None:
            log.debug(
                "Dropping response %r from %s: no active session for message %s",
                response.choice_id,
                response.actor_id,
                response.session_id,
            )
            return "unmatched"
        status = controller.offer(response)
        if status == "unauthorized":
            log.debug(
                "User %s is not the owner of session %s",
                response.actor_id,
                response.session_id,
            )
        elif status == "stale":
            log.debug(
                "Ignoring stale response %r for session %s",
                response.choice_id,
                response.session_id,
            )
        return status
