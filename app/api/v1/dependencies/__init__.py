"""FastAPI dependencies (composition root): sessions, services, current account."""

from app.api.v1.dependencies.auth import get_current_account, require_admin, require_roles
from app.api.v1.dependencies.db import (
    get_account_repo,
    get_callback_account_repo,
    get_db,
    get_db_transactional,
    get_waitlist_repo,
)
from app.api.v1.dependencies.services import (
    get_account_profile_service,
    get_app_settings,
    get_email_operations,
    get_local_auth_service,
    get_oauth_flow,
    get_token_service,
)

__all__ = [
    "get_account_profile_service",
    "get_account_repo",
    "get_app_settings",
    "get_callback_account_repo",
    "get_current_account",
    "get_db",
    "get_db_transactional",
    "get_email_operations",
    "get_local_auth_service",
    "get_oauth_flow",
    "get_token_service",
    "get_waitlist_repo",
    "require_admin",
    "require_roles",
]
