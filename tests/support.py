"""Shared fixtures for the store and gateway tests."""

from __future__ import annotations

import unittest
from datetime import datetime
from typing import Optional

from pairchat.database import async_session, drop_models, init_models
from pairchat.models.conversation import Conversation
from pairchat.models.message import Message
from pairchat.models.user import User
from pairchat.services.messages import derive_conversation_id, split_conversation_id
from pairchat.utils.crypto import encrypt
from pairchat.utils.security import hash_password

PASSWORD = "secret1"
# bcrypt is slow on purpose; hash once for every fixture user
PASSWORD_HASH = hash_password(PASSWORD)


async def reset_database() -> None:
    await drop_models()
    await init_models()


class FakeSocket:
    """Stands in for a WebSocket; records every frame sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name: str) -> list[dict]:
        return [frame for frame in self.sent if frame["event"] == name]


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        await reset_database()
        self.db = async_session()

    async def asyncTearDown(self) -> None:
        await self.db.close()

    async def make_user(self, user_id: str, username: Optional[str] = None, **fields) -> User:
        user = User(
            id=user_id,
            username=username or f"user-{user_id}",
            password_hash=PASSWORD_HASH,
            **fields,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def insert_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        created_at: datetime,
        read: bool = False,
    ) -> Message:
        """Insert a message with a fixed timestamp, bypassing the store."""
        conversation_id = derive_conversation_id(sender_id, receiver_id)
        if await self.db.get(Conversation, conversation_id) is None:
            a_id, b_id = split_conversation_id(conversation_id)
            self.db.add(Conversation(id=conversation_id, user_a_id=a_id, user_b_id=b_id))
        msg = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            ciphertext=encrypt(content),
            created_at=created_at,
            updated_at=created_at,
            read_at=created_at if read else None,
        )
        self.db.add(msg)
        await self.db.commit()
        return msg
