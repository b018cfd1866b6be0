from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from intellicode.api.deps import get_collab_hub
from intellicode.collab.hub import CollaborationHub
from intellicode.core.config import settings
from intellicode.core.security import get_current_user
from intellicode.crud import chat as chat_crud
from intellicode.crud import file as file_crud
from intellicode.crud import project as project_crud
from intellicode.crud.access import Capability, get_accessible_project, get_owned_project
from intellicode.db.base import get_db
from intellicode.models.project import CollaborationRole
from intellicode.models.user import User
from intellicode.schemas.chat import ChatMessage as ChatMessageSchema
from intellicode.schemas.project import (
    Collaborator, CollaboratorAdd, CollaboratorUpdate, FileDelete, FileWrite, PresenceEntry,
    Project as ProjectSchema, ProjectCreate, ProjectFile as ProjectFileSchema, ProjectUpdate,
)

router = APIRouter(prefix="/projects", tags=["projects"])
logger = logging.getLogger("project")


def _readable_project(db: Session, user: User, project_id: str):
    project = get_accessible_project(db, user.id, project_id, Capability.READ)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _writable_project(db: Session, user: User, project_id: str):
    project = get_accessible_project(db, user.id, project_id, Capability.WRITE)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found or insufficient permissions")
    return project


def _owned_project(db: Session, user: User, project_id: str):
    project = get_owned_project(db, user.id, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found or insufficient permissions")
    return project


@router.get("", response_model=List[ProjectSchema])
def list_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Projects the current user owns or collaborates on, most recently updated first.
    """
    return project_crud.list_user_projects(db, current_user.id)


@router.post("", response_model=ProjectSchema, status_code=status.HTTP_201_CREATED)
def create_project(
    *,
    db: Session = Depends(get_db),
    project_in: ProjectCreate,
    current_user: User = Depends(get_current_user)
) -> Any:
    project = project_crud.create_project(
        db, current_user, project_in.name, project_in.description, bool(project_in.is_public)
    )
    logger.info(f"New project created: {project.name} by {current_user.email}")
    return project


@router.get("/{project_id}", response_model=ProjectSchema)
def get_project(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    return _readable_project(db, current_user, project_id)


@router.put("/{project_id}", response_model=ProjectSchema)
def update_project(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    project_in: ProjectUpdate,
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Update a project. Owners and editors only.
    """
    project = _writable_project(db, current_user, project_id)

    for field, value in project_in.model_dump(exclude_unset=True).items():
        if field == "name" and not (value or "").strip():
            continue
        setattr(project, field, value.strip() if field == "name" else value)

    db.commit()
    db.refresh(project)
    return project


@router.delete("/{project_id}")
def delete_project(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Delete a project. Only accessible by the project owner.
    """
    project = _owned_project(db, current_user, project_id)
    name = project.name
    db.delete(project)
    db.commit()
    logger.info(f"Project deleted: {name} by {current_user.email}")
    return {"message": "Project deleted successfully"}


# Files

@router.get("/{project_id}/files", response_model=List[ProjectFileSchema])
def list_files(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    _readable_project(db, current_user, project_id)
    return file_crud.list_files(db, project_id)


@router.put("/{project_id}/files", response_model=ProjectFileSchema)
def save_file(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    file_in: FileWrite,
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Create or overwrite a file by path. Last write wins.
    """
    _writable_project(db, current_user, project_id)
    try:
        db_file = file_crud.upsert_file(db, project_id, file_in.path, file_in.content)
        project_crud.touch_project(db, project_id)
    except Exception as e:
        db.rollback()
        logger.error(f"Update project file error in {project_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update file")
    return db_file


@router.post("/{project_id}/files", response_model=ProjectFileSchema, status_code=status.HTTP_201_CREATED)
def create_file(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    file_in: FileWrite,
    current_user: User = Depends(get_current_user)
) -> Any:
    _writable_project(db, current_user, project_id)
    try:
        db_file = file_crud.create_file(db, project_id, file_in.path, file_in.content)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="A file with this path already exists")
    project_crud.touch_project(db, project_id)
    return db_file


@router.delete("/{project_id}/files")
def delete_file(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    file_in: FileDelete,
    current_user: User = Depends(get_current_user)
) -> Any:
    _writable_project(db, current_user, project_id)
    deleted = file_crud.delete_file(db, project_id, file_in.path)
    if not deleted:
        raise HTTPException(status_code=404, detail="File not found")
    project_crud.touch_project(db, project_id)
    return {"message": "File deleted successfully"}


# Collaborators

@router.get("/{project_id}/collaborators", response_model=List[Collaborator])
def list_collaborators(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    _readable_project(db, current_user, project_id)
    return project_crud.list_collaborators(db, project_id)


@router.post("/{project_id}/collaborators", response_model=List[Collaborator], status_code=status.HTTP_201_CREATED)
def add_collaborator(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    collaborator_in: CollaboratorAdd,
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Invite an existing user to a project. Owner only.
    """
    project = _owned_project(db, current_user, project_id)
    user = db.query(User).filter(User.email == collaborator_in.email).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == project.owner_id:
        raise HTTPException(status_code=400, detail="The owner is already a member of this project")
    if project_crud.get_collaboration(db, project_id, user.id):
        raise HTTPException(status_code=400, detail="User is already a collaborator")

    project_crud.add_collaborator(db, project_id, user.id, collaborator_in.role)
    logger.info(f"User {user.email} added to project {project_id} as {collaborator_in.role}")
    return project_crud.list_collaborators(db, project_id)


@router.put("/{project_id}/collaborators/{user_id}", response_model=List[Collaborator])
def update_collaborator(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    user_id: str,
    collaborator_in: CollaboratorUpdate,
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Change a collaborator's role. Takes effect on their next event.
    """
    project = _owned_project(db, current_user, project_id)
    if user_id == project.owner_id:
        raise HTTPException(status_code=400, detail="The owner's role cannot be changed")
    collaboration = project_crud.get_collaboration(db, project_id, user_id)
    if not collaboration:
        raise HTTPException(status_code=404, detail="Collaborator not found")

    collaboration.role = collaborator_in.role
    db.commit()
    logger.info(f"Collaborator {user_id} in project {project_id} is now {collaborator_in.role}")
    return project_crud.list_collaborators(db, project_id)


@router.delete("/{project_id}/collaborators/{user_id}")
def remove_collaborator(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    project = _owned_project(db, current_user, project_id)
    if user_id == project.owner_id:
        raise HTTPException(status_code=400, detail="The owner cannot be removed from the project")
    collaboration = project_crud.get_collaboration(db, project_id, user_id)
    if not collaboration:
        raise HTTPException(status_code=404, detail="Collaborator not found")
    if collaboration.role == CollaborationRole.OWNER:
        raise HTTPException(status_code=400, detail="A collaborator with the owner role cannot be removed")

    db.delete(collaboration)
    db.commit()
    return {"message": "Collaborator removed successfully"}


# Chat history and presence

@router.get("/{project_id}/chat", response_model=List[ChatMessageSchema])
def get_chat_history(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    _readable_project(db, current_user, project_id)
    messages = chat_crud.list_chat_messages(db, project_id, settings.CHAT_HISTORY_LIMIT)
    return [
        ChatMessageSchema(
            id=message.id,
            project_id=message.project_id,
            user_id=message.user_id,
            user_name=message.user.name if message.user else None,
            user_avatar=message.user.avatar if message.user else None,
            message=message.message,
            type=message.type,
            created_at=message.created_at,
        )
        for message in messages
    ]


@router.get("/{project_id}/presence", response_model=List[PresenceEntry])
def get_presence(
    *,
    db: Session = Depends(get_db),
    project_id: str,
    current_user: User = Depends(get_current_user),
    hub: CollaborationHub = Depends(get_collab_hub)
) -> Any:
    """
    Users currently connected to the project's collaboration room.
    """
    _readable_project(db, current_user, project_id)
    return hub.presence.snapshot(project_id)
