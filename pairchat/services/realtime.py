"""Realtime gateway: event handling for authenticated socket connections.

Frames are JSON objects ``{"event": str, "data": any, "ack": optional id}``.
A frame that carries an ``ack`` id is answered with an ``ack`` frame holding
the same id; failures of frames without one are reported as ``error`` events.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pairchat.errors import AuthError, AuthorizationError, ChatError, InternalError, ValidationError
from pairchat.models.message import Message
from pairchat.models.user import User, UserStatus
from pairchat.schemas.message import MessageDto
from pairchat.schemas.user import UserStatusEvent
from pairchat.services import identity
from pairchat.services import messages as message_store
from pairchat.utils.security import decode_access_token
from pairchat.ws import Connection, ConnectionManager

logger = logging.getLogger(__name__)


def message_payload(msg: Message) -> dict:
    return MessageDto.model_validate(msg).model_dump(mode="json", by_alias=True)


async def publish_new_message(manager: ConnectionManager, msg: Message) -> dict:
    """Broadcast a persisted message to its conversation room."""
    payload = message_payload(msg)
    await manager.broadcast(msg.conversation_id, "newMessage", payload)
    return payload


async def publish_status(manager: ConnectionManager, user_id: str, status: str) -> None:
    payload = UserStatusEvent(user_id=user_id, status=status).model_dump(by_alias=True)
    await manager.broadcast_all("userStatus", payload)


class RealtimeGateway:
    def __init__(self, session_factory, manager: ConnectionManager):
        self.session_factory = session_factory
        self.manager = manager
        self._handlers: Dict[str, Callable[[Connection, Any], Awaitable[Optional[dict]]]] = {
            "join": self.on_join,
            "joinChat": self.on_join_chat,
            "leaveChat": self.on_leave_chat,
            "sendMessage": self.on_send_message,
            "typing": self.on_typing,
            "ping": self.on_ping,
        }

    async def authenticate(self, token: Optional[str]) -> User:
        if not token:
            raise AuthError("Authentication token required")
        user_id = decode_access_token(token)
        async with self.session_factory() as db:
            user = await identity.get_user(db, user_id)
        if not user:
            raise AuthError("User not found")
        return user

    async def open(self, websocket, token: Optional[str]) -> Connection:
        """Authenticate a socket, register it and mark its user online."""
        user = await self.authenticate(token)
        connection = Connection(websocket, user.id)
        await self.manager.connect(connection)
        await self.manager.join(connection, user.id)
        logger.info(f"User {user.id} connected ({connection.id})")

        try:
            async with self.session_factory() as db:
                await identity.set_status(db, user.id, UserStatus.ONLINE)
            await publish_status(self.manager, user.id, UserStatus.ONLINE.value)
        except Exception:
            # the endpoint never closes a connection whose open failed
            await self.manager.disconnect(connection)
            raise
        return connection

    async def close(self, connection: Connection) -> None:
        last = await self.manager.disconnect(connection)
        logger.info(f"User {connection.user_id} disconnected ({connection.id})")
        if not last:
            return
        try:
            async with self.session_factory() as db:
                await identity.set_status(db, connection.user_id, UserStatus.OFFLINE)
        except ChatError:
            logger.warning(f"Could not mark user {connection.user_id} offline")
        await publish_status(self.manager, connection.user_id, UserStatus.OFFLINE.value)

    async def dispatch(self, connection: Connection, frame: Any) -> None:
        ack = frame.get("ack") if isinstance(frame, dict) else None
        try:
            if not isinstance(frame, dict):
                raise ValidationError("Frames must be JSON objects")
            handler = self._handlers.get(frame.get("event"))
            if handler is None:
                raise ValidationError(f"Unknown event: {frame.get('event')!r}")
            result = await handler(connection, frame.get("data"))
        except ChatError as e:
            await self._fail(connection, e, ack)
            return
        except Exception as e:
            logger.exception(f"Unhandled error in event from {connection.id}")
            await self._fail(connection, InternalError(debug=str(e)), ack)
            return

        if ack is not None:
            body = {"status": "success"}
            body.update(result or {})
            await connection.send("ack", body, ack=ack)

    async def _fail(self, connection: Connection, error: ChatError, ack) -> None:
        logger.info(f"Rejected event from {connection.id}: {error.message}")
        if ack is not None:
            await connection.send("ack", {"status": "error", "error": error.message}, ack=ack)
        else:
            await connection.send("error", {"message": error.message})

    def _conversation_room(self, connection: Connection, conversation_id: Any) -> str:
        if not isinstance(conversation_id, str) or not conversation_id:
            raise ValidationError("conversationId is required")
        pair = message_store.split_conversation_id(conversation_id)
        if connection.user_id not in pair:
            raise AuthorizationError("Not a participant in this conversation")
        return message_store.derive_conversation_id(*pair)

    async def on_join(self, connection: Connection, user_id: Any) -> dict:
        if user_id != connection.user_id:
            raise AuthorizationError("Cannot join another user's room")
        await self.manager.join(connection, user_id)
        return {"room": user_id}

    async def on_join_chat(self, connection: Connection, conversation_id: Any) -> dict:
        room = self._conversation_room(connection, conversation_id)
        await self.manager.join(connection, room)
        return {"room": room}

    async def on_leave_chat(self, connection: Connection, conversation_id: Any) -> dict:
        room = self._conversation_room(connection, conversation_id)
        await self.manager.leave(connection, room)
        return {"room": room}

    async def on_send_message(self, connection: Connection, data: Any) -> dict:
        if not isinstance(data, dict):
            raise ValidationError("Missing required fields")
        conversation_id = data.get("conversationId")
        content = data.get("content")
        if not isinstance(conversation_id, str) or not conversation_id:
            raise ValidationError("Missing required fields")
        if not isinstance(content, str) or not content:
            raise ValidationError("Missing required fields")

        async with self.session_factory() as db:
            msg = await message_store.create_message(db, conversation_id, connection.user_id, content)
        payload = await publish_new_message(self.manager, msg)
        return {"message": payload}

    async def on_typing(self, connection: Connection, data: Any) -> None:
        if not isinstance(data, dict):
            raise ValidationError("conversationId is required")
        room = self._conversation_room(connection, data.get("conversationId"))
        payload = {
            "userId": connection.user_id,
            "conversationId": room,
            "isTyping": bool(data.get("isTyping")),
        }
        await self.manager.broadcast(room, "typing", payload, exclude=connection.id)

    async def on_ping(self, connection: Connection, data: Any) -> None:
        await connection.send("pong", data)
