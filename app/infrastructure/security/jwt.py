"""JWT encoding and verification for internal session tokens.

Signing secrets are passed in by the caller so access and refresh tokens
use separate keys (JWT_SECRET and REFRESH_TOKEN_SECRET).
"""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import ExpiredSignatureError, JWTError, jwt


class TokenExpiredError(ValueError):
    """Raised when the token signature is valid but exp has passed."""


def encode_token(
    claims: dict[str, Any],
    secret: str,
    expires_delta: timedelta,
    *,
    algorithm: str = "HS256",
    with_nonce: bool = False,
) -> str:
    """Create a signed JWT with iat/exp.

    Args:
        claims: Claims to encode (must include sub).
        secret: HMAC signing secret.
        expires_delta: Token lifetime.
        algorithm: JWS algorithm.
        with_nonce: Add a random jti so tokens minted in the same second differ.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    to_encode = claims.copy()
    to_encode["iat"] = now
    to_encode["exp"] = now + expires_delta
    if with_nonce:
        to_encode["jti"] = secrets.token_urlsafe(16)
    encoded = jwt.encode(to_encode, secret, algorithm=algorithm)
    return cast(str, encoded)


def decode_token(token: str, secret: str, *, algorithm: str = "HS256") -> dict[str, Any]:
    """Verify and decode a JWT. Returns the payload.

    Enforces presence of exp and sub.

    Raises:
        TokenExpiredError: Signature valid but token expired.
        ValueError: Token invalid or missing required claims.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Token expired") from e
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if "sub" not in payload:
        raise ValueError("Token missing required claim: sub")
    return payload
