"""SQLAlchemy ORM models for the URL shortener application.

This module defines the database schema using SQLAlchemy declarative models
with proper indexing and timestamp management for links and their clicks.

Data Model Layout
=================
::
    links table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ short_code (VARCHAR(10) UNIQUE, INDEXED)
    ├─ long_url (TEXT NOT NULL)
    └─ created_at (TIMESTAMPTZ NOT NULL)

    clicks table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ link_id (INTEGER, FK → links.id, INDEXED)
    ├─ timestamp (TIMESTAMPTZ NOT NULL)
    ├─ user_agent (VARCHAR(255))
    └─ ip_address (VARCHAR(50))

Class Relationship Diagram
=========================
::
    Link 1 ──── * Click
    (Click references Link by id; it does not own the Link's lifecycle)

How to Use
===========
**Step 1 — Import**::
    from shortener.models import Click, Link

**Step 2 — Create a new Link**::
    link = Link(short_code="abc123", long_url="https://example.com")
    session.add(link)
    await session.commit()

**Step 3 — Query Links**::
    result = await session.execute(select(Link).where(Link.short_code == "abc123"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- short_code is unique and indexed for fast lookups during redirects.
- created_at is set once, at creation, and never updated.
- Links are never mutated or deleted.
- Clicks are written by the click workers, never by the request path.

Classes:
    Link:  A short code mapped to its destination URL.
    Click:  One durable redirect record for a Link.
"""

import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["Click", "Link", "SHORT_CODE_MAX_LENGTH", "USER_AGENT_MAX_LENGTH", "IP_ADDRESS_MAX_LENGTH"]

SHORT_CODE_MAX_LENGTH = 10
USER_AGENT_MAX_LENGTH = 255
IP_ADDRESS_MAX_LENGTH = 50


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(
        String(SHORT_CODE_MAX_LENGTH), unique=True, index=True, nullable=False
    )
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, short_code='{self.short_code}')>"


class Click(Base):
    __tablename__ = "clicks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    link_id: Mapped[int] = mapped_column(ForeignKey("links.id"), index=True, nullable=False)
    timestamp: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    user_agent: Mapped[str] = mapped_column(String(USER_AGENT_MAX_LENGTH), default="", nullable=False)
    ip_address: Mapped[str] = mapped_column(String(IP_ADDRESS_MAX_LENGTH), default="", nullable=False)

    def __repr__(self) -> str:
        return f"<Click(id={self.id}, link_id={self.link_id})>"
