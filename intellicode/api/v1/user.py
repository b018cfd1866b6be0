from typing import Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import datetime

from intellicode.core.security import get_current_user
from intellicode.crud import chat as chat_crud
from intellicode.crud import project as project_crud
from intellicode.db.base import get_db
from intellicode.models.chat import ChatMessage
from intellicode.models.project import Collaboration, Project, ProjectFile
from intellicode.models.user import User
from intellicode.schemas.user import (
    RecentMessage, RecentProject, User as UserSchema, UserActivity, UserStats, UserSummary, UserUpdate,
)

router = APIRouter(prefix="/user", tags=["user"])

@router.get("/profile", response_model=UserSchema)
def get_profile(
    *,
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Get current user information using JWT token authentication
    """
    return current_user

@router.put("/profile", response_model=UserSchema)
def update_profile(
    *,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    user_update: UserUpdate
) -> Any:
    """
    Update user profile information.
    """
    for field, value in user_update.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        if hasattr(current_user, field):
            setattr(current_user, field, value)

    current_user.updated_at = datetime.utcnow()
    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user

@router.get("/stats", response_model=UserStats)
def get_stats(
    *,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    owned_projects = db.query(Project).filter(Project.owner_id == current_user.id).count()
    collaborations = db.query(Collaboration).filter(
        Collaboration.user_id == current_user.id,
        Collaboration.project.has(Project.owner_id != current_user.id),
    ).count()
    files = db.query(ProjectFile).join(Project).filter(Project.owner_id == current_user.id).count()
    chat_messages = db.query(ChatMessage).filter(ChatMessage.user_id == current_user.id).count()
    return UserStats(
        owned_projects=owned_projects,
        collaborations=collaborations,
        files=files,
        chat_messages=chat_messages,
    )

@router.get("/activity", response_model=UserActivity)
def get_activity(
    *,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0)
) -> Any:
    """
    Recently updated projects and the latest chat across them, newest first.
    """
    projects = project_crud.list_user_projects(db, current_user.id, limit=limit, offset=offset)
    messages = chat_crud.list_recent_messages_for_user(db, current_user.id, limit=limit, offset=offset)
    return UserActivity(
        recent_projects=[RecentProject.model_validate(project) for project in projects],
        recent_messages=[
            RecentMessage(
                id=message.id,
                project_id=message.project_id,
                project_name=message.project.name if message.project else None,
                user=UserSummary.model_validate(message.user) if message.user else None,
                message=message.message,
                type=message.type,
                created_at=message.created_at,
            )
            for message in messages
        ],
    )
