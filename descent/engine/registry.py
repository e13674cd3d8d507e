"""Process-wide table of active interaction sessions."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Dict, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .controller import SessionController

__all__ = ["RegistrationConflict", "SessionRegistry"]


class RegistrationConflict(RuntimeError):
    """Raised when a message is already bound to an active session."""

    def __init__(self, session_id: int) -> None:
        super().__init__(f"Message {session_id} already has an active session")
        self.session_id = session_id


class SessionRegistry:
    """Track active session controllers keyed by the id of their message.

    The registry serialises access to the internal mapping via an
    :class:`asyncio.Lock`. A message can be owned by at most one active
    session; a second registration for the same id is rejected until the
    first one retires.
    """

    __slots__ = ("_sessions", "_lock")

    def __init__(self) -> None:
        self._sessions: Dict[int, "SessionController"] = {}
        self._lock = asyncio.Lock()

    async def register(self, session_id: int, controller: "SessionController") -> "SessionController":
        """Bind ``controller`` to ``session_id`` or raise :class:`RegistrationConflict`."""

        async with self._lock:
            if session_id in self._sessions:
                raise RegistrationConflict(session_id)
            self._sessions[session_id] = controller
            return controller

    async def lookup(self, session_id: int) -> Optional["SessionController"]:
        """Return the controller bound to ``session_id`` if one is active."""

        async with self._lock:
            return self._sessions.get(session_id)

    async def retire(
        self,
        session_id: int,
        controller: Optional["SessionController"] = None,
    ) -> Optional["SessionController"]:
        """Remove the entry for ``session_id``.

        Safe to call repeatedly. When ``controller`` is given the entry is
        only removed if it still belongs to that controller, so a late retire
        from a finished session cannot evict its successor.
        """

        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return None
            if controller is not None and current is not controller:
                return None
            del self._sessions[session_id]
            return current

    async def keys(self) -> Tuple[int, ...]:
        """Message ids that currently have a live session, as a tuple."""

        async with self._lock:
            return tuple(self._sessions.keys())

    async def values(self) -> Tuple["SessionController", ...]:
        """Controllers of the live sessions, copied so callers may retire them."""

        async with self._lock:
            return tuple(self._sessions.values())

    async def drain(self) -> int:
        """Abort every active session. Returns the number of sessions aborted."""

        controllers = await self.values()
        for controller in controllers:
            await controller.abort()
        async with self._lock:
            self._sessions.clear()
        return len(controllers)

    def __len__(self) -> int:
        return len(self._sessions)
