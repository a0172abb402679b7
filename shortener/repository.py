"""Durable Link and Click stores backed by an async SQLAlchemy session.

Repositories are thin: one query per method, no business rules, no commits
hidden behind reads. Uniqueness of ``short_code`` is enforced by the database
and surfaces from :meth:`LinkRepository.create` as ``IntegrityError``.
"""

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.models import Click, Link

__all__ = ["ClickRepository", "LinkRepository"]


class LinkRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, link: Link) -> Link:
        self._session.add(link)
        await self._session.commit()
        await self._session.refresh(link)
        return link

    async def find_by_short_code(self, short_code: str) -> Link | None:
        result = await self._session.execute(select(Link).where(Link.short_code == short_code))
        return result.scalar_one_or_none()

    async def exists(self, short_code: str) -> bool:
        result = await self._session.execute(select(Link.id).where(Link.short_code == short_code))
        return result.first() is not None

    async def find_all(self) -> Sequence[Link]:
        result = await self._session.execute(select(Link).order_by(Link.id))
        return result.scalars().all()

    async def count_clicks_by_link_id(self, link_id: int) -> int:
        result = await self._session.execute(
            select(func.count(Click.id)).where(Click.link_id == link_id)
        )
        return int(result.scalar_one())

    async def rollback(self) -> None:
        await self._session.rollback()


class ClickRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, click: Click) -> Click:
        self._session.add(click)
        await self._session.commit()
        return click
