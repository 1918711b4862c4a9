import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from pairchat.config import get_settings
from pairchat.database import async_session
from pairchat.errors import ChatError
from pairchat.services.realtime import RealtimeGateway
from pairchat.ws import manager

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()

gateway = RealtimeGateway(async_session, manager)


def _token_from_websocket(websocket: WebSocket):
    token = websocket.cookies.get(settings.session_cookie_name) or websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Realtime channel. Authenticates using the session cookie, a token query parameter or a Bearer header."""
    await websocket.accept()
    try:
        connection = await gateway.open(websocket, _token_from_websocket(websocket))
    except ChatError as e:
        await websocket.send_json({"event": "error", "data": {"message": e.message}})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        while True:
            text = await websocket.receive_text()
            try:
                frame = json.loads(text)
            except ValueError:
                frame = None
            await gateway.dispatch(connection, frame)
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.close(connection)
