"""Admin API: waiting-list review and account management (admin, super_admin)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_account_repo, get_waitlist_repo, require_admin
from app.core.limiter import limit_writes
from app.domain.enums import AccountStatus, WaitlistStatus
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.persistence.models.account import Account
from app.infrastructure.persistence.repositories import AccountRepository, WaitlistRepository
from app.schemas.account import AccountResponse, AccountStatusUpdate
from app.schemas.auth import MessageResponse
from app.schemas.waitlist import (
    WaitlistAdminCreate,
    WaitlistEntryResponse,
    WaitlistStatusUpdate,
)
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/waitlist", response_model=list[WaitlistEntryResponse])
async def list_waitlist(
    admin: Annotated[Account, Depends(require_admin)],
    waitlist_repo: Annotated[WaitlistRepository, Depends(get_waitlist_repo)],
    status: WaitlistStatus | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List waiting-list entries, newest first, optionally by status."""
    entries = await waitlist_repo.list_entries(status, skip=skip, limit=limit)
    return [WaitlistEntryResponse.model_validate(e) for e in entries]


@router.post("/waitlist", response_model=WaitlistEntryResponse, status_code=201)
@limit_writes
async def add_waitlist_entry(
    request: Request,
    body: WaitlistAdminCreate,
    admin: Annotated[Account, Depends(require_admin)],
    waitlist_repo: Annotated[WaitlistRepository, Depends(get_waitlist_repo)],
):
    """Add an entry on someone's behalf, optionally pre-approved."""
    entry = await waitlist_repo.create_entry(
        body.email,
        body.name.strip(),
        inbox=body.inbox,
        description=body.description,
        status=body.status,
    )
    logger.info("Admin %s added waitlist entry %s (%s)", admin.id, entry.id, entry.status)
    return WaitlistEntryResponse.model_validate(entry)


@router.patch("/waitlist/{entry_id}", response_model=WaitlistEntryResponse)
@limit_writes
async def update_waitlist_status(
    request: Request,
    entry_id: str,
    body: WaitlistStatusUpdate,
    admin: Annotated[Account, Depends(require_admin)],
    waitlist_repo: Annotated[WaitlistRepository, Depends(get_waitlist_repo)],
):
    """Approve, reject or reset an entry."""
    entry = await waitlist_repo.set_status(entry_id, body.status)
    logger.info("Admin %s set waitlist entry %s to %s", admin.id, entry_id, entry.status)
    return WaitlistEntryResponse.model_validate(entry)


@router.get("/accounts", response_model=list[AccountResponse])
async def list_accounts(
    admin: Annotated[Account, Depends(require_admin)],
    account_repo: Annotated[AccountRepository, Depends(get_account_repo)],
    status: AccountStatus | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    accounts = await account_repo.list_accounts(
        skip=skip, limit=limit, status=status.value if status else None
    )
    return [AccountResponse.model_validate(a) for a in accounts]


async def _get_account(account_repo: AccountRepository, account_id: str) -> Account:
    account = await account_repo.get_by_id(account_id)
    if account is None:
        raise ResourceNotFoundException("account", account_id)
    return account


@router.patch("/accounts/{account_id}/status", response_model=AccountResponse)
@limit_writes
async def update_account_status(
    request: Request,
    account_id: str,
    body: AccountStatusUpdate,
    admin: Annotated[Account, Depends(require_admin)],
    account_repo: Annotated[AccountRepository, Depends(get_account_repo)],
):
    """Set an account's status; anything but active blocks authentication."""
    if account_id == admin.id and body.status is not AccountStatus.ACTIVE:
        raise ValidationException("Admins cannot deactivate their own account", field="status")
    account = await _get_account(account_repo, account_id)
    account.status = body.status.value
    if body.status is not AccountStatus.ACTIVE:
        account.refresh_token = None
    await account_repo.save(account)
    logger.info("Admin %s set account %s status to %s", admin.id, account_id, account.status)
    return AccountResponse.model_validate(account)


@router.delete("/accounts/{account_id}", response_model=MessageResponse)
@limit_writes
async def delete_account(
    request: Request,
    account_id: str,
    admin: Annotated[Account, Depends(require_admin)],
    account_repo: Annotated[AccountRepository, Depends(get_account_repo)],
):
    """Hard-delete an account and its stored credentials."""
    if account_id == admin.id:
        raise ValidationException("Admins cannot delete their own account", field="account_id")
    account = await _get_account(account_repo, account_id)
    await account_repo.delete(account)
    logger.info("Admin %s deleted account %s", admin.id, account_id)
    return MessageResponse(message="Account deleted")
