import logging
import weakref
from typing import Dict, List, Optional, Tuple

from intellicode.collab import events
from intellicode.collab.errors import AuthorizationError
from intellicode.collab.presence import PresenceRegistry
from intellicode.collab.session import Session
from intellicode.collab.store import CollabStore
from intellicode.crud.access import Capability

logger = logging.getLogger("collab")


class RoomManager:
    """Tracks which connections are in which project rooms.

    A session is in room X's member set if and only if X is in the session's
    joined set. Only ``join``, ``leave`` and ``disconnect`` change either side.
    Rooms hold their members weakly and are dropped once empty.
    """

    def __init__(self, store: CollabStore, presence: PresenceRegistry):
        self.store = store
        self.presence = presence
        self._rooms: Dict[str, "weakref.WeakSet[Session]"] = {}

    # Queries

    def members(self, project_id: str) -> Tuple[Session, ...]:
        room = self._rooms.get(project_id)
        if room is None:
            return ()
        return tuple(room)

    def is_member(self, session: Session, project_id: str) -> bool:
        room = self._rooms.get(project_id)
        return room is not None and session in room

    def rooms(self) -> List[str]:
        return [project_id for project_id, room in self._rooms.items() if len(room)]

    def require_member(self, session: Session, project_id: str) -> None:
        if not self.is_member(session, project_id):
            raise AuthorizationError("Join the project room first")

    # Mutations

    def _attach(self, session: Session, project_id: str) -> bool:
        room = self._rooms.setdefault(project_id, weakref.WeakSet())
        if session in room:
            return False
        room.add(session)
        session._joined_rooms.add(project_id)
        self.presence.add(project_id, session)
        return True

    def _detach(self, session: Session, project_id: str) -> bool:
        room = self._rooms.get(project_id)
        was_member = room is not None and session in room
        if room is not None:
            room.discard(session)
            if not len(room):
                del self._rooms[project_id]
        session._joined_rooms.discard(project_id)
        self.presence.remove(project_id, session)
        return was_member

    async def join(self, session: Session, project_id: str) -> bool:
        """Admit a session to a project room after a read check.

        Returns False (and sends the joiner an error) on denial.
        """
        if session.closed:
            return False

        if not await self.store.can_access(session.user.id, project_id, Capability.READ):
            logger.warning(f"User {session.user.id} denied access to project {project_id}")
            await session.send_error("Access denied to project", events.JOIN_ROOM)
            return False

        # Loaded before attaching so a store failure leaves membership untouched
        collaborators = await self.store.list_collaborators(project_id)

        # The store calls suspended; the connection may have gone away meanwhile
        if session.closed:
            return False

        newly_joined = self._attach(session, project_id)
        if newly_joined:
            notice = dict(session.user.as_member(), projectId=project_id)
            await self.broadcast(project_id, events.MEMBER_JOINED, notice, exclude=session)
            logger.info(f"User {session.user.name} joined project {project_id}")

        await session.send(events.COLLABORATORS_SNAPSHOT, {
            "projectId": project_id,
            "collaborators": collaborators,
        })
        return True

    async def leave(self, session: Session, project_id: str) -> bool:
        """Remove a session from a room. Leaving a room you are not in is a no-op."""
        if not self._detach(session, project_id):
            return False

        notice = dict(session.user.as_member(), projectId=project_id)
        await self.broadcast(project_id, events.MEMBER_LEFT, notice)
        logger.info(f"User {session.user.name} left project {project_id}")
        return True

    async def disconnect(self, session: Session) -> None:
        """Tear down a connection: leave every joined room, then discard it."""
        if session.closed:
            return
        session.closed = True
        for project_id in list(session.joined_rooms):
            await self.leave(session, project_id)
        logger.info(f"User disconnected: {session.user.name} ({session.connection_id})")

    # Delivery

    async def broadcast(self, project_id: str, event: str, data: dict, exclude: Optional[Session] = None) -> int:
        """Send to every room member in turn, skipping ``exclude``.

        A member whose transport fails is logged and skipped; the rest still
        receive the event in the same order.
        """
        delivered = 0
        for member in self.members(project_id):
            if member is exclude:
                continue
            if await member.send(event, data):
                delivered += 1
        return delivered
