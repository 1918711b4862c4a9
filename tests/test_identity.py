"""Tests for the identity store."""

from __future__ import annotations

import unittest

from pairchat.errors import AuthError, ConflictError, NotFoundError, ValidationError
from pairchat.services import identity

from support import PASSWORD, StoreTestCase


class SearchUsersTests(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        await self.make_user("u1", "alice")
        await self.make_user("u2", "a_b")
        await self.make_user("u3", "axb")
        await self.make_user("u4", "100%club", first_name="Percy")

    async def usernames(self, query: str, exclude_id: str | None = "u1") -> list[str]:
        return [u.username for u in await identity.search_users(self.db, query, exclude_id=exclude_id)]

    async def test_wildcard_characters_match_literally(self) -> None:
        self.assertEqual(await self.usernames("_"), ["a_b"])
        self.assertEqual(await self.usernames("a_b"), ["a_b"])
        self.assertEqual(await self.usernames("%"), ["100%club"])
        self.assertEqual(await self.usernames("\\"), [])

    async def test_matches_names_case_insensitively_and_excludes_caller(self) -> None:
        self.assertEqual(await self.usernames("PERC"), ["100%club"])
        self.assertEqual(await self.usernames("ali"), [])
        self.assertEqual(await self.usernames("ali", exclude_id=None), ["alice"])

    async def test_empty_query_lists_everyone_else(self) -> None:
        self.assertEqual(await self.usernames("  "), ["100%club", "a_b", "axb"])


class AccountTests(StoreTestCase):
    async def test_create_and_authenticate(self) -> None:
        user = await identity.create_user(self.db, "  dora ", PASSWORD, first_name="Dora")

        self.assertEqual(user.username, "dora")
        self.assertEqual(user.status, "offline")
        self.assertNotEqual(user.password_hash, PASSWORD)
        self.assertEqual((await identity.authenticate(self.db, "dora", PASSWORD)).id, user.id)

    async def test_authenticate_failures(self) -> None:
        await self.make_user("u1", "alice")

        with self.assertRaises(NotFoundError):
            await identity.authenticate(self.db, "nobody", PASSWORD)
        with self.assertRaises(AuthError):
            await identity.authenticate(self.db, "alice", "wrong-password")

    async def test_create_rejects_short_and_duplicate_usernames(self) -> None:
        await self.make_user("u1", "alice")

        with self.assertRaises(ValidationError):
            await identity.create_user(self.db, "a", PASSWORD)
        with self.assertRaises(ValidationError):
            await identity.create_user(self.db, "zed", "12345")
        with self.assertRaises(ConflictError):
            await identity.create_user(self.db, "alice", PASSWORD)

    async def test_long_passwords_hash_and_verify(self) -> None:
        password = "p" * 128
        await identity.create_user(self.db, "verbose", password)

        self.assertEqual((await identity.authenticate(self.db, "verbose", password)).username, "verbose")


if __name__ == "__main__":
    unittest.main()
