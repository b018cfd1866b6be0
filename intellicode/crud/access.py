"""Project access checks shared by the REST routers and the realtime layer.

Every check reads the ownership and collaboration rows fresh, so a role
change takes effect on the very next request or event.
"""
from enum import Enum
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from intellicode.models.project import Collaboration, CollaborationRole, Project


class Capability(str, Enum):
    READ = "read"
    WRITE = "write"


def get_accessible_project(
    db: Session, user_id: str, project_id: str, capability: Capability = Capability.READ
) -> Optional[Project]:
    """Return the project if ``user_id`` holds ``capability`` on it, else None."""
    if capability == Capability.WRITE:
        membership = Project.collaborations.any(
            (Collaboration.user_id == user_id)
            & (Collaboration.role.in_(CollaborationRole.WRITERS))
        )
    else:
        membership = Project.collaborations.any(Collaboration.user_id == user_id)

    return db.query(Project).filter(
        Project.id == project_id,
        or_(Project.owner_id == user_id, membership),
    ).first()


def can_access(db: Session, user_id: str, project_id: str, capability: Capability) -> bool:
    return get_accessible_project(db, user_id, project_id, capability) is not None


def get_owned_project(db: Session, user_id: str, project_id: str) -> Optional[Project]:
    return db.query(Project).filter(
        Project.id == project_id,
        Project.owner_id == user_id,
    ).first()
