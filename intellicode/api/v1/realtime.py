from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
import logging

from intellicode.api.deps import get_collab_hub
from intellicode.collab.errors import AuthenticationError
from intellicode.collab.gatekeeper import extract_bearer_token
from intellicode.collab.hub import CollaborationHub

router = APIRouter(tags=["realtime"])
logger = logging.getLogger("collab")


def _frame_text(message: dict):
    """Text of a received frame; binary frames are decoded as UTF-8. None if neither."""
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


@router.websocket("/ws")
async def collaboration_socket(
    websocket: WebSocket,
    hub: CollaborationHub = Depends(get_collab_hub)
):
    """
    Realtime collaboration endpoint.

    The bearer credential comes from the ``token`` query parameter or the
    Authorization header. Frames are JSON ``{"event": ..., "data": ...}``,
    sent as text or UTF-8 binary.
    """
    token = extract_bearer_token(
        websocket.query_params.get("token"),
        websocket.headers.get("authorization"),
    )
    try:
        session = await hub.connect(websocket, token)
    except AuthenticationError as e:
        logger.warning(f"Socket authentication error: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            raw = _frame_text(message)
            if raw is None:
                await session.send_error("Malformed event: frame is not UTF-8 text")
                continue
            await hub.dispatch_raw(session, raw)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for {session!r}: {str(e)}")
        try:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except RuntimeError:
            # Already closed by the transport
            pass
    finally:
        await hub.disconnect(session)
