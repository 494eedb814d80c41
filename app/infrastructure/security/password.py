"""Password hashing (bcrypt with SHA-256 pre-hash).

Bcrypt truncates inputs at 72 bytes; pre-hashing with SHA-256 yields a fixed-length
input so long passwords are not silently truncated.
"""

import asyncio
import base64
import hashlib

import bcrypt

# Lazy dummy hash for comparison when the account is not found (equalizes login timing).
_dummy_hash_cache: str | None = None


def _prehash(password: str) -> bytes:
    """SHA-256 pre-hash to avoid bcrypt's 72-byte truncation."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password."""
    try:
        result = bcrypt.checkpw(
            _prehash(plain_password),
            hashed_password.encode("utf-8"),
        )
        return bool(result)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    """Return bcrypt hash of password (SHA-256 pre-hashed before bcrypt)."""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(_prehash(password), salt)
    return hashed.decode("utf-8")


async def hash_password_async(password: str) -> str:
    """Hash in a worker thread (bcrypt is CPU bound)."""
    return await asyncio.to_thread(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str | None) -> bool:
    """Verify in a worker thread; a missing hash is checked against a dummy hash."""
    global _dummy_hash_cache
    if not hashed_password:
        if _dummy_hash_cache is None:
            _dummy_hash_cache = await asyncio.to_thread(
                get_password_hash, "not-a-real-password"
            )
        await asyncio.to_thread(verify_password, plain_password, _dummy_hash_cache)
        return False
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)
