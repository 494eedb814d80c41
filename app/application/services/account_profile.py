"""Self-service profile updates for the authenticated account."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.application.interfaces.repositories import IAccountRepository
from app.domain.exceptions import ValidationException
from app.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account

logger = get_logger(__name__)

_PICTURE_PREFIXES = ("https://", "http://", "data:image/")


class AccountProfileService:
    """Update display name and profile picture; other fields are not user-editable."""

    def __init__(self, account_repo: IAccountRepository) -> None:
        self.account_repo = account_repo

    async def update_profile(
        self,
        account: Account,
        *,
        name: str | None = None,
        profile_picture: str | None = None,
    ) -> Account:
        """Apply the given fields. An empty picture string removes the picture.

        Raises:
            ValidationException: Blank name or a picture that is not an
                http(s) URL or an image data URI.
        """
        if name is not None:
            if not name.strip():
                raise ValidationException("Name cannot be empty", field="name")
            account.name = name.strip()
        if profile_picture is not None:
            picture = profile_picture.strip()
            if picture and not picture.startswith(_PICTURE_PREFIXES):
                raise ValidationException(
                    "Profile picture must be an http(s) URL or an image data URI",
                    field="profilePicture",
                )
            account.profile_picture = picture or None
        await self.account_repo.save(account)
        logger.info("Updated profile for account %s", account.id)
        return account
