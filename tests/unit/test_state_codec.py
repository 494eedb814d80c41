"""Tests for the signed OAuth state codec."""

import pytest

from app.infrastructure.security.state_codec import OAuthStateCodec


@pytest.fixture
def codec() -> OAuthStateCodec:
    return OAuthStateCodec("test-secret-for-state", default_redirect="/dashboard")


def test_encode_then_decode_returns_redirect(codec: OAuthStateCodec) -> None:
    assert codec.decode(codec.encode("/inbox?tab=important")) == "/inbox?tab=important"


def test_states_are_unique_per_encode(codec: OAuthStateCodec) -> None:
    """A nonce makes every state distinct even for the same redirect."""
    assert codec.encode("/inbox") != codec.encode("/inbox")


def test_missing_state_yields_default(codec: OAuthStateCodec) -> None:
    assert codec.decode(None) == "/dashboard"
    assert codec.decode("") == "/dashboard"


def test_tampered_payload_yields_default(codec: OAuthStateCodec) -> None:
    state = codec.encode("/inbox")
    payload, signature = state.rsplit(".", 1)
    forged = OAuthStateCodec("other-secret").encode("/admin")
    assert codec.decode(f"{forged.rsplit('.', 1)[0]}.{signature}") == "/dashboard"
    assert codec.decode(f"{payload}x.{signature}") == "/dashboard"


def test_state_from_another_secret_is_rejected(codec: OAuthStateCodec) -> None:
    other = OAuthStateCodec("different-secret")
    assert codec.decode(other.encode("/inbox")) == "/dashboard"


@pytest.mark.parametrize(
    "redirect",
    ["https://evil.example/", "//evil.example", "/\\evil", "javascript:alert(1)", None],
)
def test_unsafe_redirects_fall_back_to_default(codec: OAuthStateCodec, redirect) -> None:
    assert codec.decode(codec.encode(redirect)) == "/dashboard"
