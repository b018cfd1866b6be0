from sqlalchemy import Boolean, Column, String, ForeignKey, DateTime, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship
from intellicode.db.base_class import Base

class CollaborationRole:
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"

    ALL = (OWNER, EDITOR, VIEWER)
    WRITERS = (OWNER, EDITOR)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, default=False)
    last_modified = Column(DateTime, default=func.now())

    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    created_at = Column(DateTime, default=func.now())

    # Relationships
    owner = relationship("User", back_populates="projects")
    files = relationship("ProjectFile", back_populates="project", cascade="all, delete-orphan")
    collaborations = relationship("Collaboration", back_populates="project", cascade="all, delete-orphan")
    chat_messages = relationship("ChatMessage", back_populates="project", cascade="all, delete-orphan")


class ProjectFile(Base):
    __tablename__ = "project_files"
    __table_args__ = (UniqueConstraint("project_id", "path", name="uq_project_files_project_path"),)

    id = Column(String, primary_key=True, index=True)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    path = Column(String, nullable=False)
    content = Column(Text, default="", nullable=False)
    language = Column(String, default="plaintext", nullable=False)
    size = Column(Integer, default=0, nullable=False)  # UTF-8 byte length of content
    is_directory = Column(Boolean, default=False, nullable=False)

    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    created_at = Column(DateTime, default=func.now())

    project = relationship("Project", back_populates="files")


class Collaboration(Base):
    __tablename__ = "collaborations"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_collaborations_project_user"),)

    id = Column(String, primary_key=True, index=True)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, default=CollaborationRole.VIEWER, nullable=False)

    created_at = Column(DateTime, default=func.now())

    project = relationship("Project", back_populates="collaborations")
    user = relationship("User", back_populates="collaborations")
