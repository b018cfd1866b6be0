from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(min_length=2)
    avatar: Optional[str] = None
    bio: Optional[str] = None

class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=2)
    password: str = Field(min_length=6)

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2)
    avatar: Optional[str] = None
    bio: Optional[str] = None

class UserInDB(UserBase):
    id: str
    role: str = "user"
    created_at: datetime

    class Config:
        from_attributes = True

class User(UserInDB):
    pass

class UserSummary(BaseModel):
    id: str
    name: str
    avatar: Optional[str] = None

    class Config:
        from_attributes = True

class UserStats(BaseModel):
    owned_projects: int
    collaborations: int
    files: int
    chat_messages: int

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class RegisterResponse(Token):
    user: User

class RecentProject(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner: Optional[UserSummary] = None
    last_modified: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True

class RecentMessage(BaseModel):
    id: str
    project_id: str
    project_name: Optional[str] = None
    user: Optional[UserSummary] = None
    message: str
    type: str
    created_at: datetime

class UserActivity(BaseModel):
    recent_projects: List[RecentProject]
    recent_messages: List[RecentMessage]
