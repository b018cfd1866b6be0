import uuid
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from intellicode.crud.project import user_projects_filter
from intellicode.models.chat import ChatMessage, ChatMessageType
from intellicode.models.project import Project


def create_chat_message(
    db: Session, project_id: str, user_id: str, text: str, message_type: str = ChatMessageType.MESSAGE
) -> ChatMessage:
    chat_message = ChatMessage(
        id=str(uuid.uuid4()),
        project_id=project_id,
        user_id=user_id,
        message=text,
        type=message_type,
        created_at=datetime.utcnow(),
    )
    db.add(chat_message)
    db.commit()
    db.refresh(chat_message)
    return chat_message


def list_chat_messages(db: Session, project_id: str, limit: int = 100) -> List[ChatMessage]:
    """Most recent ``limit`` messages, returned oldest first."""
    messages = db.query(ChatMessage).filter(
        ChatMessage.project_id == project_id
    ).order_by(ChatMessage.created_at.desc()).limit(limit).all()
    messages.reverse()
    return messages


def list_recent_messages_for_user(db: Session, user_id: str, limit: int = 20, offset: int = 0) -> List[ChatMessage]:
    """Newest messages across every project the user can read."""
    return db.query(ChatMessage).join(Project, ChatMessage.project_id == Project.id).filter(
        user_projects_filter(user_id)
    ).order_by(ChatMessage.created_at.desc()).offset(offset).limit(limit).all()
