"""Public waiting-list signup."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import get_waitlist_repo
from app.core.limiter import limit_auth
from app.infrastructure.persistence.repositories import WaitlistRepository
from app.schemas.waitlist import WaitlistEntryResponse, WaitlistJoinRequest

router = APIRouter()


@router.post("", response_model=WaitlistEntryResponse, status_code=201)
@limit_auth
async def join_waitlist(
    request: Request,
    body: WaitlistJoinRequest,
    waitlist_repo: Annotated[WaitlistRepository, Depends(get_waitlist_repo)],
):
    """Add a pending entry; duplicate email returns 409."""
    entry = await waitlist_repo.create_entry(
        body.email,
        body.name.strip(),
        inbox=body.inbox,
        description=body.description,
    )
    return WaitlistEntryResponse.model_validate(entry)
