import logging

from intellicode.collab import events
from intellicode.collab.errors import AuthorizationError
from intellicode.collab.rooms import RoomManager
from intellicode.collab.session import Session
from intellicode.collab.store import CollabStore
from intellicode.crud.access import Capability
from intellicode.schemas.realtime import ChatMessagePayload

logger = logging.getLogger("collab")


class ChatRelay:
    """Persists chat messages and echoes the stored copy to the whole room, sender included."""

    def __init__(self, rooms: RoomManager, store: CollabStore):
        self.rooms = rooms
        self.store = store

    async def relay(self, session: Session, payload: ChatMessagePayload) -> dict:
        project_id = payload.project_id
        sender = session.user

        self.rooms.require_member(session, project_id)
        if not await self.store.can_access(sender.id, project_id, Capability.READ):
            raise AuthorizationError("Access denied to project")

        stored = await self.store.create_chat_message(project_id, sender.id, payload.text)
        message = {
            "id": stored["id"],
            "projectId": project_id,
            "userId": sender.id,
            "userName": sender.name,
            "avatar": sender.avatar,
            "text": stored["text"],
            "type": stored["type"],
            "timestamp": events.utc_timestamp(stored["created_at"]),
        }
        await self.rooms.broadcast(project_id, events.CHAT_MESSAGE, message)
        logger.info(f"Chat message in project {project_id} by {sender.name}")
        return message
