"""Security: JWT, password hashing, provider-token ciphers, OAuth state signing."""

from app.infrastructure.security.jwt import TokenExpiredError, decode_token, encode_token
from app.infrastructure.security.password import (
    get_password_hash,
    hash_password_async,
    verify_password,
    verify_password_async,
)
from app.infrastructure.security.state_codec import OAuthStateCodec
from app.infrastructure.security.token_cipher import (
    FernetTokenCipher,
    NoOpTokenCipher,
    build_token_cipher,
)

__all__ = [
    "FernetTokenCipher",
    "NoOpTokenCipher",
    "OAuthStateCodec",
    "TokenExpiredError",
    "build_token_cipher",
    "decode_token",
    "encode_token",
    "get_password_hash",
    "hash_password_async",
    "verify_password",
    "verify_password_async",
]
