#!/usr/bin/env python3
"""Create (or promote) an admin user and print a development access token.

Accounts normally come from the identity provider; this is for local
setups where the token is signed with the service's own secret.
"""

import asyncio
from datetime import timedelta

from sqlalchemy import select

from krushilink.core.security import create_access_token
from krushilink.database import AsyncSessionLocal
from krushilink.models.user import User


async def create_admin(phone: str, name: str, token_days: int) -> None:
    """Create an admin user if it doesn't exist."""
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.phone == phone))
        admin = result.scalar_one_or_none()

        if admin:
            admin.role = "admin"
            admin.is_suspended = False
            admin.name = admin.name or name
            print(f"Promoted existing user: {phone}")
        else:
            admin = User(
                phone=phone,
                name=name,
                role="admin",
                is_profile_complete=True,
                is_verified=True,
            )
            session.add(admin)
            print(f"Created admin user: {phone}")

        await session.commit()
        await session.refresh(admin)

    token = create_access_token(
        {"sub": str(admin.id), "phone": phone},
        expires_delta=timedelta(days=token_days),
    )
    print(f"User ID: {admin.id}")
    print("Role: admin")
    print(f"Token: {token}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--phone", default="+919000000001", help="Admin phone (+91XXXXXXXXXX)")
    parser.add_argument("--name", default="KrushiLink Admin", help="Display name")
    parser.add_argument("--token-days", type=int, default=7, help="Token lifetime in days")

    args = parser.parse_args()

    asyncio.run(create_admin(phone=args.phone, name=args.name, token_days=args.token_days))
