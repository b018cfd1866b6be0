import logging

from intellicode.collab import events
from intellicode.collab.errors import PersistenceError
from intellicode.collab.rooms import RoomManager
from intellicode.collab.session import Session
from intellicode.collab.store import CollabStore
from intellicode.schemas.realtime import CursorUpdatePayload, TypingPayload

logger = logging.getLogger("collab")


class CursorBroadcaster:
    """Ephemeral cursor and typing hints.

    Room membership is the only gate. Cursor rows are saved after the
    broadcast and a failed save is only logged.
    """

    def __init__(self, rooms: RoomManager, store: CollabStore):
        self.rooms = rooms
        self.store = store

    async def move(self, session: Session, payload: CursorUpdatePayload) -> None:
        project_id = payload.project_id
        user = session.user
        self.rooms.require_member(session, project_id)

        position = payload.position
        self.rooms.presence.update_cursor(project_id, session, payload.file_path, position.line, position.column)
        await self.rooms.broadcast(project_id, events.CURSOR_UPDATE, {
            "projectId": project_id,
            "filePath": payload.file_path,
            "position": {"line": position.line, "column": position.column},
            "userId": user.id,
            "userName": user.name,
            "timestamp": events.utc_timestamp(),
        }, exclude=session)

        try:
            await self.store.save_cursor(user.id, project_id, payload.file_path, position.line, position.column)
        except PersistenceError as e:
            logger.warning(f"Cursor position for {user.id} in project {project_id} not saved: {e.message}")

    async def typing(self, session: Session, payload: TypingPayload, is_typing: bool) -> None:
        self.rooms.require_member(session, payload.project_id)
        event = events.TYPING_START if is_typing else events.TYPING_STOP
        await self.rooms.broadcast(payload.project_id, event, {
            "projectId": payload.project_id,
            "filePath": payload.file_path,
            "userId": session.user.id,
            "userName": session.user.name,
        }, exclude=session)
