"""Repository helpers for user accounts."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dbmodels import Users


async def find_user_by_username(session: AsyncSession, username: str) -> Users | None:
    stmt = select(Users).where(Users.username == username)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def find_user_by_id(session: AsyncSession, user_id: UUID) -> Users | None:
    return await session.get(Users, user_id)


async def create_user(session: AsyncSession, *, username: str, favorite_genre: str) -> Users:
    user = Users(username=username, favorite_genre=favorite_genre)
    session.add(user)
    await session.flush()
    return user
