"""Async facade over the SQLAlchemy store for the realtime layer.

Each call opens its own session and runs on the threadpool, so awaiting a
store call is the only point where another event can be processed.
"""
import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession
from starlette.concurrency import run_in_threadpool

from intellicode.collab.errors import PersistenceError
from intellicode.collab.session import UserIdentity
from intellicode.crud import access as access_crud
from intellicode.crud import chat as chat_crud
from intellicode.crud import cursor as cursor_crud
from intellicode.crud import file as file_crud
from intellicode.crud import project as project_crud
from intellicode.models.user import User

logger = logging.getLogger("db")


class CollabStore:
    def __init__(self, session_factory: Callable[[], DBSession]):
        self._session_factory = session_factory

    def _call(self, operation: Callable, *args):
        db = self._session_factory()
        try:
            return operation(db, *args)
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    async def _run(self, failure_message: str, operation: Callable, *args):
        try:
            return await run_in_threadpool(self._call, operation, *args)
        except SQLAlchemyError as e:
            logger.error(f"{failure_message}: {str(e)}")
            raise PersistenceError(failure_message) from e

    async def get_user(self, user_id: str) -> Optional[UserIdentity]:
        def load(db, user_id):
            user = db.query(User).filter(User.id == user_id).first()
            if user is None or not user.is_active:
                return None
            return UserIdentity(id=user.id, name=user.name, email=user.email, avatar=user.avatar)

        return await self._run("Failed to load user", load, user_id)

    async def can_access(self, user_id: str, project_id: str, capability: access_crud.Capability) -> bool:
        return await self._run(
            "Failed to check project access", access_crud.can_access, user_id, project_id, capability
        )

    async def list_collaborators(self, project_id: str) -> List[dict]:
        return await self._run("Failed to load collaborators", project_crud.list_collaborators, project_id)

    async def save_file(self, project_id: str, path: str, content: str) -> dict:
        def upsert(db, project_id, path, content):
            db_file = file_crud.upsert_file(db, project_id, path, content)
            return {
                "id": db_file.id,
                "path": db_file.path,
                "language": db_file.language,
                "size": db_file.size,
            }

        return await self._run("Failed to update code", upsert, project_id, path, content)

    async def touch_project(self, project_id: str) -> None:
        await self._run("Failed to update project timestamp", project_crud.touch_project, project_id)

    async def create_chat_message(self, project_id: str, user_id: str, text: str) -> dict:
        def create(db, project_id, user_id, text):
            message = chat_crud.create_chat_message(db, project_id, user_id, text)
            return {
                "id": message.id,
                "text": message.message,
                "type": message.type,
                "created_at": message.created_at,
            }

        return await self._run("Failed to send message", create, project_id, user_id, text)

    async def save_cursor(self, user_id: str, project_id: str, file_path: str, line: int, column: int) -> None:
        def upsert(db, *args):
            cursor_crud.upsert_cursor(db, *args)

        await self._run("Failed to save cursor position", upsert, user_id, project_id, file_path, line, column)
