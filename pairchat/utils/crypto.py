import logging

from cryptography.fernet import Fernet

from pairchat.config import get_settings

logger = logging.getLogger(__name__)

SHIFT = 3


def _shift_char(char: str, shift: int) -> str:
    if "A" <= char <= "Z":
        base = ord("A")
    elif "a" <= char <= "z":
        base = ord("a")
    else:
        return char
    return chr((ord(char) - base + shift) % 26 + base)


def shift_encrypt(value: str) -> str:
    return "".join(_shift_char(c, SHIFT) for c in value)


def shift_decrypt(value: str) -> str:
    return "".join(_shift_char(c, -SHIFT) for c in value)


def _get_fernet() -> Fernet:
    return Fernet(get_settings().encryption_key.encode())


def fernet_encrypt(value: str) -> str:
    return _get_fernet().encrypt(value.encode()).decode()


def fernet_decrypt(value: str) -> str:
    return _get_fernet().decrypt(value.encode()).decode()


def looks_like_fernet(value: str) -> bool:
    # Fernet tokens start with gAAAAA
    return value.startswith("gAAAAA")


_SCHEMES = {
    "shift": (shift_encrypt, shift_decrypt),
    "fernet": (fernet_encrypt, fernet_decrypt),
}


def _scheme():
    name = get_settings().message_cipher.lower()
    try:
        return _SCHEMES[name]
    except KeyError:
        raise ValueError(f"Unknown message cipher: {name}")


def encrypt(value: str) -> str:
    """Obfuscate message content for storage. Returns the input on failure."""
    try:
        return _scheme()[0](value)
    except Exception as e:
        logger.warning(f"Message encryption failed, storing as is: {e!r}")
        return value


def decrypt(value: str) -> str:
    """Reverse ``encrypt``. Returns the input on failure."""
    try:
        return _scheme()[1](value)
    except Exception as e:
        logger.warning(f"Message decryption failed, returning stored value: {e!r}")
        return value
