import json
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session as DBSession

from intellicode.collab import events
from intellicode.collab.chat import ChatRelay
from intellicode.collab.cursors import CursorBroadcaster
from intellicode.collab.edits import EditSynchronizer
from intellicode.collab.errors import CollabError, MalformedEventError
from intellicode.collab.gatekeeper import authenticate_connection
from intellicode.collab.presence import PresenceRegistry
from intellicode.collab.rooms import RoomManager
from intellicode.collab.session import Connection, Session
from intellicode.collab.store import CollabStore
from intellicode.schemas.realtime import (
    ChatMessagePayload,
    CursorUpdatePayload,
    EditUpdatePayload,
    EventEnvelope,
    RoomPayload,
    TypingPayload,
)

logger = logging.getLogger("collab")


def _validation_summary(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "payload"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


class CollaborationHub:
    """Entry point for the realtime protocol.

    Owns the room manager and the event handlers for one server process.
    Built once per application and handed to the WebSocket route.
    """

    def __init__(self, session_factory: Callable[[], DBSession], serialize_writes: bool = False):
        self.store = CollabStore(session_factory)
        self.presence = PresenceRegistry()
        self.rooms = RoomManager(self.store, self.presence)
        self.edits = EditSynchronizer(self.rooms, self.store, serialize_writes=serialize_writes)
        self.chat = ChatRelay(self.rooms, self.store)
        self.cursors = CursorBroadcaster(self.rooms, self.store)

        self._handlers = {
            events.JOIN_ROOM: (RoomPayload, self._on_join),
            events.LEAVE_ROOM: (RoomPayload, self._on_leave),
            events.EDIT_UPDATE: (EditUpdatePayload, self.edits.apply),
            events.CHAT_MESSAGE: (ChatMessagePayload, self.chat.relay),
            events.CURSOR_UPDATE: (CursorUpdatePayload, self.cursors.move),
            events.TYPING_START: (TypingPayload, self._on_typing_start),
            events.TYPING_STOP: (TypingPayload, self._on_typing_stop),
        }

    async def connect(self, connection: Connection, token: Optional[str]) -> Session:
        """Authenticate a handshake. Raises AuthenticationError before any room state exists."""
        user = await authenticate_connection(self.store, token)
        session = Session(connection, user)
        logger.info(f"User connected: {user.name} ({session.connection_id})")
        return session

    async def disconnect(self, session: Session) -> None:
        await self.rooms.disconnect(session)

    async def dispatch_raw(self, session: Session, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            await session.send_error("Malformed event: invalid JSON")
            return
        await self.dispatch(session, message)

    async def dispatch(self, session: Session, message: Any) -> None:
        """Run one inbound event to completion. Failures go back to ``session`` only."""
        event_name = message.get("event") if isinstance(message, dict) else None
        try:
            await self._handle(session, message)
        except CollabError as e:
            await session.send_error(e.message, e.event or event_name)
        except Exception:
            logger.exception(f"Unhandled error processing {event_name} for {session!r}")
            await session.send_error("Failed to process event", event_name)

    async def _handle(self, session: Session, message: Any) -> None:
        try:
            envelope = EventEnvelope.model_validate(message)
        except ValidationError as e:
            raise MalformedEventError(f"Malformed event: {_validation_summary(e)}")

        handler = self._handlers.get(envelope.event)
        if handler is None:
            raise MalformedEventError(f"Unknown event: {envelope.event}", envelope.event)
        payload_model, callback = handler

        data = envelope.data
        if isinstance(data, str):
            data = {"projectId": data}
        try:
            payload = payload_model.model_validate(data)
        except ValidationError as e:
            raise MalformedEventError(f"Malformed {envelope.event} payload: {_validation_summary(e)}", envelope.event)

        await callback(session, payload)

    async def _on_join(self, session: Session, payload: RoomPayload) -> None:
        await self.rooms.join(session, payload.project_id)

    async def _on_leave(self, session: Session, payload: RoomPayload) -> None:
        await self.rooms.leave(session, payload.project_id)

    async def _on_typing_start(self, session: Session, payload: TypingPayload) -> None:
        await self.cursors.typing(session, payload, True)

    async def _on_typing_stop(self, session: Session, payload: TypingPayload) -> None:
        await self.cursors.typing(session, payload, False)
