import logging
import uuid
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Protocol, Set

from intellicode.collab import events

logger = logging.getLogger("collab")


class Connection(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


@dataclass(frozen=True)
class UserIdentity:
    """Authenticated user attached to a connection."""
    id: str
    name: str
    email: str
    avatar: Optional[str] = None

    def as_member(self) -> dict:
        return {"userId": self.id, "userName": self.name, "avatar": self.avatar}


class Session:
    """One open collaboration connection.

    The user identity is fixed at construction. ``joined_rooms`` is owned by
    RoomManager and must not be mutated anywhere else.
    """

    def __init__(self, connection: Connection, user: UserIdentity, connection_id: str = None):
        self.connection_id = connection_id or uuid.uuid4().hex
        self._user = user
        self._connection = connection
        self._joined_rooms: Set[str] = set()
        self.closed = False

    @property
    def user(self) -> UserIdentity:
        return self._user

    @property
    def joined_rooms(self) -> FrozenSet[str]:
        return frozenset(self._joined_rooms)

    async def send(self, event: str, data: dict) -> bool:
        """Deliver one event. Returns False when the transport refused it."""
        if self.closed:
            return False
        try:
            await self._connection.send_json(events.envelope(event, data))
        except Exception as e:
            logger.warning(f"Failed to deliver {event} to connection {self.connection_id}: {str(e)}")
            return False
        return True

    async def send_error(self, message: str, event: str = None) -> bool:
        data = {"message": message}
        if event:
            data["event"] = event
        return await self.send(events.ERROR, data)

    def __repr__(self) -> str:
        return f"<Session {self.connection_id} user={self._user.id}>"
