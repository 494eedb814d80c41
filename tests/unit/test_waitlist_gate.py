"""Tests for the waiting-list gate."""

import pytest

from app.application.services.waitlist_gate import WaitlistGate
from app.domain.enums import WaitlistDecision
from app.domain.exceptions import WaitlistDeniedException
from tests.fakes import FakeWaitlistRepository, make_entry


@pytest.fixture
def gate() -> WaitlistGate:
    return WaitlistGate(
        FakeWaitlistRepository(
            make_entry("approved@example.com", "approved"),
            make_entry("pending@example.com", "pending"),
            make_entry("rejected@example.com", "rejected"),
        )
    )


async def test_approved_email_passes(gate: WaitlistGate) -> None:
    result = await gate.authorize("Approved@Example.com ")
    assert result.approved
    assert result.entry is not None


async def test_unknown_email_is_not_found(gate: WaitlistGate) -> None:
    result = await gate.authorize("nobody@example.com")
    assert result.decision is WaitlistDecision.NOT_FOUND
    assert result.reason == (
        "Access denied: The email nobody@example.com is not found in our waiting list. "
        "Please join the waiting list first to proceed."
    )


@pytest.mark.parametrize("email", ["pending@example.com", "rejected@example.com"])
async def test_unapproved_email_is_pending(gate: WaitlistGate, email: str) -> None:
    result = await gate.authorize(email)
    assert result.decision is WaitlistDecision.PENDING_APPROVAL
    assert "not yet approved" in (result.reason or "")


async def test_ensure_approved_raises_for_denial(gate: WaitlistGate) -> None:
    with pytest.raises(WaitlistDeniedException) as exc_info:
        await gate.ensure_approved("nobody@example.com")
    assert exc_info.value.error_code == "WAITLIST_DENIED"
