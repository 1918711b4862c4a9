"""One-time script to move stored messages from the letter-shift cipher to Fernet.

Run after setting MESSAGE_CIPHER=fernet and ENCRYPTION_KEY.

Usage:
    python -m scripts.reencrypt_messages
"""
import asyncio

from sqlalchemy import text

from pairchat.config import get_settings
from pairchat.database import async_session
from pairchat.utils.crypto import fernet_encrypt, looks_like_fernet, shift_decrypt


async def main():
    settings = get_settings()
    if settings.message_cipher.lower() != "fernet" or not settings.encryption_key:
        print("Set MESSAGE_CIPHER=fernet and ENCRYPTION_KEY first.")
        return

    async with async_session() as session:
        result = await session.execute(text("SELECT id, ciphertext FROM messages"))
        rows = result.fetchall()

        if not rows:
            print("No messages found.")
            return

        converted = 0
        skipped = 0

        for message_id, ciphertext in rows:
            if looks_like_fernet(ciphertext):
                skipped += 1
                continue

            await session.execute(
                text("UPDATE messages SET ciphertext = :value WHERE id = :id"),
                {"value": fernet_encrypt(shift_decrypt(ciphertext)), "id": message_id},
            )
            converted += 1

        await session.commit()
        print(f"Done. Converted: {converted}, Skipped (already Fernet): {skipped}")


if __name__ == "__main__":
    asyncio.run(main())
