"""Create an admin account, or promote an existing account to admin.

Usage:
    python -m scripts.create_admin <email> [password] [--super]
New accounts get a local password; if it is omitted, a random one is printed.
Existing accounts keep their credentials and only change role.
"""

import asyncio
import secrets
import sys

from app.application.services.identity_linker import new_account_fields
from app.core.config import get_settings
from app.domain.enums import AccountRole, AuthProvider
from app.infrastructure.persistence import database
from app.infrastructure.persistence.repositories import AccountRepository
from app.infrastructure.security.password import hash_password_async


async def main() -> None:
    args = [a for a in sys.argv[1:] if a != "--super"]
    if not args:
        print("Usage: python -m scripts.create_admin <email> [password] [--super]", file=sys.stderr)
        sys.exit(1)
    role = AccountRole.SUPER_ADMIN if "--super" in sys.argv else AccountRole.ADMIN
    email = args[0]
    password = args[1] if len(args) > 1 else None

    get_settings()
    database.ensure_engine()
    if database.AsyncSessionLocal is None:
        print("AsyncSessionLocal not configured", file=sys.stderr)
        sys.exit(1)

    try:
        await _create_or_promote(email, password, role)
    finally:
        await database.dispose_engine()


async def _create_or_promote(email: str, password: str | None, role: AccountRole) -> None:
    assert database.AsyncSessionLocal is not None
    async with database.AsyncSessionLocal() as session:
        async with session.begin():
            repo = AccountRepository(session)
            account = await repo.get_by_email(email)
            if account is not None:
                account.role = role.value
                await repo.save(account)
                print(f"Promoted account {account.id} ({account.email}) to {role.value}")
                return
            if not password:
                password = secrets.token_urlsafe(12)
            fields = new_account_fields(email.strip().lower(), email.split("@", 1)[0])
            fields.update(
                role=role.value,
                auth_provider=AuthProvider.LOCAL.value,
                password_hash=await hash_password_async(password),
                verified=True,
                first_login=False,
            )
            account = await repo.create_account(**fields)
            print(f"Created {role.value} account {account.id} ({account.email})")
            print(f"Password: {password}")


if __name__ == "__main__":
    asyncio.run(main())
