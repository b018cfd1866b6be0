from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from intellicode.collab.events import utc_timestamp
from intellicode.collab.session import Session


@dataclass
class PresenceEntry:
    user_id: str
    user_name: str
    avatar: Optional[str] = None
    file_path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    joined_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def to_payload(self) -> dict:
        position = None
        if self.line is not None and self.column is not None:
            position = {"line": self.line, "column": self.column}
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "avatar": self.avatar,
            "filePath": self.file_path,
            "position": position,
            "updatedAt": utc_timestamp(self.updated_at),
        }


class PresenceRegistry:
    """Per-project map of connection id to user and last known cursor."""

    def __init__(self):
        self._projects: Dict[str, Dict[str, PresenceEntry]] = {}

    def add(self, project_id: str, session: Session) -> PresenceEntry:
        entries = self._projects.setdefault(project_id, {})
        entry = entries.get(session.connection_id)
        if entry is None:
            user = session.user
            entry = PresenceEntry(user_id=user.id, user_name=user.name, avatar=user.avatar)
            entries[session.connection_id] = entry
        return entry

    def update_cursor(self, project_id: str, session: Session, file_path: str, line: int, column: int) -> Optional[PresenceEntry]:
        entry = self._projects.get(project_id, {}).get(session.connection_id)
        if entry is None:
            return None
        entry.file_path = file_path
        entry.line = line
        entry.column = column
        entry.updated_at = datetime.utcnow()
        return entry

    def remove(self, project_id: str, session: Session) -> None:
        entries = self._projects.get(project_id)
        if not entries:
            return
        entries.pop(session.connection_id, None)
        if not entries:
            del self._projects[project_id]

    def snapshot(self, project_id: str) -> List[dict]:
        """Online users for a project, one entry per user, freshest cursor wins."""
        by_user: Dict[str, PresenceEntry] = {}
        for entry in self._projects.get(project_id, {}).values():
            current = by_user.get(entry.user_id)
            if current is None or entry.updated_at > current.updated_at:
                by_user[entry.user_id] = entry
        return [entry.to_payload() for entry in by_user.values()]
