"""Tests for conversation aggregation."""

from __future__ import annotations

import unittest
from datetime import datetime, timedelta

from pairchat.errors import NotFoundError, ValidationError
from pairchat.services.conversations import list_conversations, open_conversation

from support import StoreTestCase

T0 = datetime(2026, 3, 1, 9, 0, 0)


class ListConversationsTests(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        for user_id, name in [("u1", "alice"), ("u2", "bob"), ("u3", "carol"), ("u4", "dave"), ("u5", "erin")]:
            await self.make_user(user_id, name)

    async def test_empty_when_user_has_no_messages(self) -> None:
        self.assertEqual(await list_conversations(self.db, "u1"), [])

    async def test_sorted_by_most_recent_message_with_unread_counts(self) -> None:
        await self.insert_message("u2", "u1", "from bob", T0)
        await self.insert_message("u1", "u3", "to carol", T0 + timedelta(minutes=5))
        await self.insert_message("u4", "u1", "from dave 1", T0 + timedelta(minutes=1))
        await self.insert_message("u4", "u1", "from dave 2", T0 + timedelta(minutes=2), read=True)
        await self.insert_message("u4", "u1", "from dave 3", T0 + timedelta(minutes=3))

        summaries = await list_conversations(self.db, "u1")

        self.assertEqual([s.user.username for s in summaries], ["carol", "dave", "bob"])
        self.assertEqual([s.last_message.content for s in summaries], ["to carol", "from dave 3", "from bob"])
        self.assertEqual([s.unread_count for s in summaries], [0, 2, 1])

    async def test_never_lists_users_without_shared_messages(self) -> None:
        await self.insert_message("u1", "u2", "hey", T0)
        await self.insert_message("u3", "u4", "not involving alice", T0)

        summaries = await list_conversations(self.db, "u1")

        self.assertEqual([s.user.id for s in summaries], ["u2"])

    async def test_ties_break_on_counterparty_id(self) -> None:
        await self.insert_message("u1", "u4", "same time", T0)
        await self.insert_message("u1", "u2", "same time", T0)
        await self.insert_message("u1", "u3", "same time", T0)

        summaries = await list_conversations(self.db, "u1")

        self.assertEqual([s.user.id for s in summaries], ["u2", "u3", "u4"])

    async def test_counterparty_without_user_record_is_dropped(self) -> None:
        await self.insert_message("u1", "ghost", "anyone there?", T0 + timedelta(hours=1))
        await self.insert_message("u2", "u1", "hi", T0)

        summaries = await list_conversations(self.db, "u1")

        self.assertEqual([s.user.id for s in summaries], ["u2"])

    async def test_counts_are_per_viewer(self) -> None:
        await self.insert_message("u1", "u2", "one", T0)
        await self.insert_message("u1", "u2", "two", T0 + timedelta(seconds=1))

        alice_view = await list_conversations(self.db, "u1")
        bob_view = await list_conversations(self.db, "u2")

        self.assertEqual(alice_view[0].unread_count, 0)
        self.assertEqual(bob_view[0].unread_count, 2)
        self.assertEqual(bob_view[0].user.username, "alice")


class OpenConversationTests(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        await self.make_user("u1", "alice")
        await self.make_user("u2", "bob")

    async def test_get_or_create_is_stable(self) -> None:
        first = await open_conversation(self.db, "u2", "u1")
        second = await open_conversation(self.db, "u1", "u2")

        self.assertEqual(first.id, "u1_u2")
        self.assertEqual(second.id, first.id)
        self.assertEqual(first.participant_ids, ["u1", "u2"])

    async def test_rejects_self_and_unknown_participants(self) -> None:
        with self.assertRaises(ValidationError):
            await open_conversation(self.db, "u1", "u1")
        with self.assertRaises(NotFoundError):
            await open_conversation(self.db, "u1", "nobody")

    async def test_open_conversation_does_not_list_it(self) -> None:
        await open_conversation(self.db, "u1", "u2")
        self.assertEqual(await list_conversations(self.db, "u1"), [])


if __name__ == "__main__":
    unittest.main()
