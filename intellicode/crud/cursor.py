import uuid

from sqlalchemy.orm import Session

from intellicode.models.cursor import CursorPosition


def upsert_cursor(db: Session, user_id: str, project_id: str, file_path: str, line: int, column: int) -> CursorPosition:
    """Overwrite the last known cursor for (user, project, file)."""
    cursor = db.query(CursorPosition).filter(
        CursorPosition.user_id == user_id,
        CursorPosition.project_id == project_id,
        CursorPosition.file_path == file_path,
    ).first()
    if cursor is None:
        cursor = CursorPosition(
            id=str(uuid.uuid4()),
            user_id=user_id,
            project_id=project_id,
            file_path=file_path,
        )
    cursor.line = line
    cursor.column = column
    db.add(cursor)
    db.commit()
    return cursor
