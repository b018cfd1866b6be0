from typing import Any, Dict, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

class EventEnvelope(BaseModel):
    """One inbound frame: ``{"event": ..., "data": ...}``"""
    event: str = Field(min_length=1)
    # join-room / leave-room also accept a bare project id string
    data: Union[Dict[str, Any], str] = Field(default_factory=dict)


class RoomPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId", min_length=1)


class FilePayload(RoomPayload):
    file_path: str = Field(alias="filePath", min_length=1)

    @field_validator("file_path")
    @classmethod
    def validate_file_path(cls, v):
        """Reject blank paths"""
        if not v.strip():
            raise ValueError("filePath must not be empty")
        return v


class EditUpdatePayload(FilePayload):
    content: str
    # Display-only; the author is always taken from the session
    author_user_id: Optional[str] = Field(default=None, alias="authorUserId")


class CursorPoint(BaseModel):
    line: int = Field(ge=0)
    column: int = Field(ge=0)


class CursorUpdatePayload(FilePayload):
    position: CursorPoint


class TypingPayload(FilePayload):
    pass


class ChatMessagePayload(RoomPayload):
    text: str = Field(validation_alias=AliasChoices("text", "message"), max_length=5000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v):
        """Reject blank messages; keep the text verbatim"""
        if not v.strip():
            raise ValueError("Message must not be empty")
        return v
