from datetime import datetime
from typing import Optional

# client -> server
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
TYPING_START = "typing-start"
TYPING_STOP = "typing-stop"

# both directions
EDIT_UPDATE = "edit-update"
CURSOR_UPDATE = "cursor-update"
CHAT_MESSAGE = "chat-message"

# server -> client
MEMBER_JOINED = "member-joined"
MEMBER_LEFT = "member-left"
COLLABORATORS_SNAPSHOT = "collaborators-snapshot"
ERROR = "error"


def envelope(event: str, data: dict) -> dict:
    return {"event": event, "data": data}


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp for outbound payloads."""
    moment = moment or datetime.utcnow()
    return moment.isoformat(timespec="milliseconds") + "Z"
