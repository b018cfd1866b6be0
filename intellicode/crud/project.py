import uuid
from datetime import datetime
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from intellicode.core.languages import content_size
from intellicode.models.project import Collaboration, CollaborationRole, Project, ProjectFile
from intellicode.models.user import User


def user_projects_filter(user_id: str):
    """Projects the user owns or collaborates on."""
    return or_(
        Project.owner_id == user_id,
        Project.collaborations.any(Collaboration.user_id == user_id),
    )


def list_user_projects(db: Session, user_id: str, limit: int = None, offset: int = 0) -> List[Project]:
    query = db.query(Project).filter(user_projects_filter(user_id)).order_by(Project.updated_at.desc())
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def create_project(db: Session, owner: User, name: str, description: str = None, is_public: bool = False) -> Project:
    project = Project(
        id=str(uuid.uuid4()),
        name=name,
        description=description,
        is_public=is_public,
        owner_id=owner.id,
        last_modified=datetime.utcnow(),
    )
    readme = f"# {name}\n\n{description or 'A new project created with IntelliCode Hub'}"
    project.files.append(ProjectFile(
        id=str(uuid.uuid4()),
        name="README.md",
        path="README.md",
        content=readme,
        language="markdown",
        size=content_size(readme),
    ))
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def touch_project(db: Session, project_id: str) -> None:
    """Bump a project's last-modified timestamp."""
    db.query(Project).filter(Project.id == project_id).update(
        {Project.last_modified: datetime.utcnow()}, synchronize_session=False
    )
    db.commit()


def list_collaborators(db: Session, project_id: str) -> List[dict]:
    """Static role roster for a project, owner first."""
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        return []

    roster = []
    if project.owner is not None:
        roster.append({
            "userId": project.owner.id,
            "name": project.owner.name,
            "avatar": project.owner.avatar,
            "role": CollaborationRole.OWNER,
        })

    collaborations = db.query(Collaboration).filter(
        Collaboration.project_id == project_id
    ).order_by(Collaboration.created_at.asc()).all()
    for collaboration in collaborations:
        if collaboration.user_id == project.owner_id:
            continue
        roster.append({
            "userId": collaboration.user.id,
            "name": collaboration.user.name,
            "avatar": collaboration.user.avatar,
            "role": collaboration.role,
        })
    return roster


def get_collaboration(db: Session, project_id: str, user_id: str):
    return db.query(Collaboration).filter(
        Collaboration.project_id == project_id,
        Collaboration.user_id == user_id,
    ).first()


def add_collaborator(db: Session, project_id: str, user_id: str, role: str) -> Collaboration:
    collaboration = Collaboration(
        id=str(uuid.uuid4()),
        project_id=project_id,
        user_id=user_id,
        role=role,
    )
    db.add(collaboration)
    db.commit()
    db.refresh(collaboration)
    return collaboration
