"""Waiting-list gate: decides whether an external email may sign in.

Pure read; runs before any account or credential is written.
"""

from app.application.dtos.auth import GateResult
from app.application.interfaces.repositories import IWaitlistRepository
from app.domain.enums import WaitlistDecision
from app.domain.exceptions import WaitlistDeniedException
from app.shared.telemetry.logging import get_logger
from app.shared.utils.sanitization import normalize_email

logger = get_logger(__name__)

NOT_FOUND_REASON = (
    "Access denied: The email {email} is not found in our waiting list. "
    "Please join the waiting list first to proceed."
)
PENDING_REASON = (
    "Access denied: The email {email} is registered but not yet approved. "
    "Please wait for admin approval."
)


class WaitlistGate:
    """Authorize emails against the waiting list."""

    def __init__(self, waitlist_repo: IWaitlistRepository) -> None:
        self.waitlist_repo = waitlist_repo

    async def authorize(self, email: str) -> GateResult:
        """Return APPROVED, NOT_FOUND or PENDING_APPROVAL for email.

        Any status other than approved (pending, rejected) resolves to
        PENDING_APPROVAL with the same reason.
        """
        normalized = normalize_email(email)
        entry = await self.waitlist_repo.get_by_email(normalized)
        if entry is None:
            logger.info("Waitlist gate: %s not found", normalized)
            return GateResult(
                decision=WaitlistDecision.NOT_FOUND,
                email=normalized,
                reason=NOT_FOUND_REASON.format(email=normalized),
            )
        if not entry.is_approved:
            logger.info("Waitlist gate: %s not approved (status=%s)", normalized, entry.status)
            return GateResult(
                decision=WaitlistDecision.PENDING_APPROVAL,
                email=normalized,
                reason=PENDING_REASON.format(email=normalized),
                entry=entry,
            )
        return GateResult(decision=WaitlistDecision.APPROVED, email=normalized, entry=entry)

    async def ensure_approved(self, email: str) -> GateResult:
        """Like authorize, but raise WaitlistDeniedException unless approved."""
        result = await self.authorize(email)
        if not result.approved:
            raise WaitlistDeniedException(
                result.email, result.reason or "", result.decision.value
            )
        return result
