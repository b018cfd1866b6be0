from typing import Optional
from pydantic import BaseModel
from datetime import datetime

class ChatMessage(BaseModel):
    id: str
    project_id: str
    user_id: str
    user_name: Optional[str] = None
    user_avatar: Optional[str] = None
    message: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True
