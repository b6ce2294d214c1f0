"""Create a development administrator and print a bearer token for it."""

from __future__ import annotations

import asyncio

from sqlalchemy import select

from app.core.security import create_access_token
from app.db.session import get_sessionmaker
from app.models import User

EMAIL = "admin@bookstore.local"
NAME = "Dev Admin"


async def main() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        user = (
            await session.execute(select(User).where(User.email == EMAIL))
        ).scalar_one_or_none()
        if user is None:
            user = User(email=EMAIL, name=NAME, is_admin=True, is_active=True)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            print(f"Created admin {EMAIL}")
        else:
            print(f"User {EMAIL} already exists")
        print(f"Bearer token: {create_access_token(str(user.id))}")


if __name__ == "__main__":
    asyncio.run(main())
