"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends

from boardsync.api.events import EventManager
from boardsync.board.session import BoardSession
from boardsync.config import BoardConfig

if TYPE_CHECKING:
    from boardsync.upstream.client import Transport


class SessionNotFoundError(LookupError):
    """No board session is open for the project."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"No board session for project '{project_id}'")


class SessionRegistry:
    """Open board sessions, one per project, sharing one transport."""

    def __init__(
        self,
        transport: Transport,
        config: BoardConfig | None = None,
        event_manager: EventManager | None = None,
    ) -> None:
        self.transport = transport
        self.config = config or BoardConfig()
        self.event_manager = event_manager
        self._sessions: dict[str, BoardSession] = {}

    def get(self, project_id: str) -> BoardSession:
        """Return the open session for a project.

        Raises:
            SessionNotFoundError: If no session is open.
        """
        try:
            return self._sessions[project_id]
        except KeyError:
            raise SessionNotFoundError(project_id) from None

    def open(self, project_id: str) -> BoardSession:
        """Return the project's session, creating it if needed. Does not load."""
        session = self._sessions.get(project_id)
        if session is None:
            session = BoardSession(self.transport, project_id, self.config)
            if self.event_manager is not None:
                em = self.event_manager
                session.subscribe(lambda change: em.emit_board_change(project_id, change))
            self._sessions[project_id] = session
        return session

    async def close(self, project_id: str, drain: bool = True) -> None:
        """Close and forget a project's session.

        Raises:
            SessionNotFoundError: If no session is open.
        """
        session = self.get(project_id)
        del self._sessions[project_id]
        await session.close(drain=drain)

    async def close_all(self) -> None:
        for project_id in list(self._sessions):
            await self.close(project_id, drain=False)

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


# Global SessionRegistry instance (initialized on app startup)
_registry: SessionRegistry | None = None


def init_registry(registry: SessionRegistry) -> SessionRegistry:
    """Initialize the global SessionRegistry instance."""
    global _registry  # noqa: PLW0603
    _registry = registry
    return _registry


async def close_registry() -> None:
    """Close every session and drop the global SessionRegistry."""
    global _registry  # noqa: PLW0603
    if _registry is not None:
        await _registry.close_all()
        _registry = None


def get_registry() -> Generator[SessionRegistry, None, None]:
    """Dependency that provides the SessionRegistry instance."""
    if _registry is None:
        raise RuntimeError("SessionRegistry not initialized. Call init_registry() first.")
    yield _registry


# Type alias for dependency injection
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]

# Global EventManager instance
_event_manager: EventManager | None = None


def init_event_manager() -> EventManager:
    """Initialize the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = EventManager()
    return _event_manager


def close_event_manager() -> None:
    global _event_manager  # noqa: PLW0603
    _event_manager = None


def get_event_manager() -> Generator[EventManager, None, None]:
    """Dependency that provides the EventManager instance."""
    if _event_manager is None:
        raise RuntimeError("EventManager not initialized. Call init_event_manager() first.")
    yield _event_manager


EventManagerDep = Annotated[EventManager, Depends(get_event_manager)]
