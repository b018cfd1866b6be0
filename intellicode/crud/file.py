import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from intellicode.core.languages import content_size, file_name_from_path, get_language_from_path
from intellicode.models.project import ProjectFile


def get_file(db: Session, project_id: str, path: str) -> Optional[ProjectFile]:
    return db.query(ProjectFile).filter(
        ProjectFile.project_id == project_id,
        ProjectFile.path == path,
    ).first()


def list_files(db: Session, project_id: str) -> List[ProjectFile]:
    return db.query(ProjectFile).filter(
        ProjectFile.project_id == project_id
    ).order_by(ProjectFile.path.asc()).all()


def create_file(db: Session, project_id: str, path: str, content: str = "") -> ProjectFile:
    """Insert a new file row. Raises IntegrityError if the path is taken."""
    db_file = ProjectFile(
        id=str(uuid.uuid4()),
        project_id=project_id,
        name=file_name_from_path(path),
        path=path,
        content=content,
        language=get_language_from_path(path),
        size=content_size(content),
    )
    db.add(db_file)
    db.commit()
    db.refresh(db_file)
    return db_file


def _replace_content(db: Session, db_file: ProjectFile, content: str) -> ProjectFile:
    db_file.content = content
    db_file.size = content_size(content)
    db.add(db_file)
    db.commit()
    db.refresh(db_file)
    return db_file


def upsert_file(db: Session, project_id: str, path: str, content: str) -> ProjectFile:
    """Whole-file replace keyed by (project, path). Last write wins."""
    db_file = get_file(db, project_id, path)
    if db_file is not None:
        return _replace_content(db, db_file, content)

    try:
        return create_file(db, project_id, path, content)
    except IntegrityError:
        # Another writer created the row between our lookup and insert
        db.rollback()
        db_file = get_file(db, project_id, path)
        if db_file is None:
            raise
        return _replace_content(db, db_file, content)


def delete_file(db: Session, project_id: str, path: str) -> int:
    deleted = db.query(ProjectFile).filter(
        ProjectFile.project_id == project_id,
        ProjectFile.path == path,
    ).delete(synchronize_session=False)
    db.commit()
    return deleted
