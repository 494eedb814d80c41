"""Opaque OAuth state: base64url JSON {"redirect": ...} plus an HMAC signature.

The signing key is derived from JWT_SECRET with HKDF (domain separation),
so a state minted by this service cannot be forged or altered in transit.
"""

import base64
import binascii
import hashlib
import hmac
import json
import secrets

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

# Domain-separation context for OAuth state signing key derivation.
_OAUTH_STATE_KEY_INFO = b"oauth-state-signing"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class OAuthStateCodec:
    """Encode and decode the redirect carried through the provider round trip."""

    def __init__(self, secret: str, default_redirect: str = "/dashboard") -> None:
        self.default_redirect = default_redirect
        self._signing_key = self._derive_signing_key(secret)

    @staticmethod
    def _derive_signing_key(secret: str) -> bytes:
        """Derive a purpose-specific HMAC key from the master secret (domain separation)."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=_OAUTH_STATE_KEY_INFO,
        )
        return hkdf.derive(secret.encode())

    def _sign(self, payload: str) -> str:
        return hmac.new(self._signing_key, payload.encode(), hashlib.sha256).hexdigest()

    def encode(self, redirect: str | None) -> str:
        """Return payload.signature for the given post-login redirect."""
        body = {
            "redirect": self.safe_redirect(redirect),
            "nonce": secrets.token_urlsafe(8),
        }
        payload = _b64encode(json.dumps(body, separators=(",", ":")).encode())
        return f"{payload}.{self._sign(payload)}"

    def decode(self, state: str | None) -> str:
        """Return the redirect carried by state; default redirect when missing or invalid."""
        if not state:
            return self.default_redirect
        payload, _, signature = state.rpartition(".")
        if not payload or not hmac.compare_digest(self._sign(payload), signature):
            logger.warning("OAuth state signature invalid; using default redirect")
            return self.default_redirect
        try:
            body = json.loads(_b64decode(payload))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            logger.warning("OAuth state payload undecodable; using default redirect")
            return self.default_redirect
        if not isinstance(body, dict):
            return self.default_redirect
        return self.safe_redirect(body.get("redirect"))

    def safe_redirect(self, redirect: object) -> str:
        """Allow only same-site absolute paths (no scheme, no protocol-relative //)."""
        if (
            isinstance(redirect, str)
            and redirect.startswith("/")
            and not redirect.startswith("//")
            and "\\" not in redirect
        ):
            return redirect
        return self.default_redirect
