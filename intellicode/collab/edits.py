import asyncio
import logging
from contextlib import asynccontextmanager, nullcontext
from typing import Dict, Tuple

from intellicode.collab import events
from intellicode.collab.errors import AuthorizationError
from intellicode.collab.rooms import RoomManager
from intellicode.collab.session import Session
from intellicode.collab.store import CollabStore
from intellicode.crud.access import Capability
from intellicode.schemas.realtime import EditUpdatePayload

logger = logging.getLogger("collab")


class FileWriteLocks:
    """One asyncio.Lock per (project, path), dropped when nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._holders: Dict[Tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, project_id: str, path: str):
        key = (project_id, path)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class EditSynchronizer:
    """Whole-file edit sync: authorize, persist, then fan out to the rest of the room.

    By default overlapping edits to one file race and the last commit wins.
    With ``serialize_writes`` they persist one at a time in arrival order.
    """

    def __init__(self, rooms: RoomManager, store: CollabStore, serialize_writes: bool = False):
        self.rooms = rooms
        self.store = store
        self.locks = FileWriteLocks() if serialize_writes else None

    def _write_guard(self, project_id: str, path: str):
        if self.locks is None:
            return nullcontext()
        return self.locks.hold(project_id, path)

    async def apply(self, session: Session, payload: EditUpdatePayload) -> dict:
        project_id = payload.project_id
        author = session.user

        self.rooms.require_member(session, project_id)
        if not await self.store.can_access(author.id, project_id, Capability.WRITE):
            logger.warning(f"User {author.id} denied write access to project {project_id}")
            raise AuthorizationError("Access denied to project")

        if payload.author_user_id and payload.author_user_id != author.id:
            logger.warning(
                f"Ignoring client-supplied author {payload.author_user_id} on edit from {author.id}"
            )

        async with self._write_guard(project_id, payload.file_path):
            record = await self.store.save_file(project_id, payload.file_path, payload.content)
        await self.store.touch_project(project_id)

        update = {
            "projectId": project_id,
            "filePath": payload.file_path,
            "content": payload.content,
            "authorUserId": author.id,
            "authorName": author.name,
            "timestamp": events.utc_timestamp(),
        }
        await self.rooms.broadcast(project_id, events.EDIT_UPDATE, update, exclude=session)
        logger.debug(
            f"Code change in project {project_id}, file {payload.file_path} "
            f"({record['size']} bytes) by {author.name}"
        )
        return update
