from typing import Optional, List, Literal
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from .user import UserSummary

CollaboratorRole = Literal["editor", "viewer"]

class ProjectBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    is_public: Optional[bool] = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Project name is required")
        return v

class ProjectCreate(ProjectBase):
    pass

class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_public: Optional[bool] = None

class ProjectFileSummary(BaseModel):
    id: str
    name: str
    path: str
    language: str
    size: int

    class Config:
        from_attributes = True

class ProjectFile(ProjectFileSummary):
    content: str
    created_at: datetime
    updated_at: datetime

class FileWrite(BaseModel):
    path: str = Field(min_length=1)
    content: str = ""

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("File path is required")
        return v

class FileDelete(BaseModel):
    path: str = Field(min_length=1)

class Collaborator(BaseModel):
    userId: str
    name: str
    avatar: Optional[str] = None
    role: str

class CollaboratorAdd(BaseModel):
    email: str
    role: CollaboratorRole = "viewer"

class CollaboratorUpdate(BaseModel):
    role: CollaboratorRole

class Project(ProjectBase):
    id: str
    owner_id: str
    owner: Optional[UserSummary] = None
    last_modified: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    files: List[ProjectFileSummary] = []

    class Config:
        from_attributes = True

class PresenceEntry(BaseModel):
    userId: str
    userName: str
    avatar: Optional[str] = None
    filePath: Optional[str] = None
    position: Optional[dict] = None
    updatedAt: str
