"""
Script to create (or promote) a local admin user and print a bearer token for testing.

Usage:
    python -m app.scripts.create_local_admin --email admin@example.com --first-name Ada --last-name Admin
"""

import argparse
import asyncio

from sqlmodel import select

from app.core.auth import create_access_token
from app.core.database import get_session_context, init_db
from app.models.user import User


async def create_admin(email: str, first_name: str, last_name: str) -> None:
    await init_db()

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role="admin",
                is_active=True,
            )
            session.add(user)
            print(f"Created admin user: {email}")
        else:
            user.role = "admin"
            user.is_active = True
            session.add(user)
            print(f"User {email} already exists; ensured admin role and active flag.")

        await session.flush()
        token = create_access_token(user.id, user.role)

    print("Done.")
    print(f"Bearer token:\n{token}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--first-name", default="Local", help="First name")
    parser.add_argument("--last-name", default="Admin", help="Last name")

    args = parser.parse_args()

    asyncio.run(create_admin(args.email, args.first_name, args.last_name))
