"""Pydantic schemas for request/response validation in the URL shortener.

This module defines Pydantic models for API input validation, output serialization
and the transient click event passed from the redirect path to the click workers.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    └─ long_url: str (validated URL)

    LinkResponse (Output)
    ├─ short_code: str
    ├─ long_url: str
    └─ full_short_url: str (computed)

    LinkStats (Output)
    ├─ short_code: str
    ├─ long_url: str
    ├─ total_clicks: int
    └─ created_at: datetime

    HealthResponse (Output)
    └─ status: "ok"

    ClickEvent (internal, queued)
    ├─ link_id: int
    ├─ timestamp: datetime
    ├─ user_agent: str
    └─ ip_address: str

Key Behaviours
===============
- URL validation uses the validators library for RFC compliance.
- All datetime fields are timezone-aware.
- ClickEvent is frozen: once queued, a worker sees exactly what the producer saw.

Classes:
    LinkCreate:  Input schema for link creation requests.
    LinkResponse:  Output schema for created links.
    LinkStats:  Output schema for link statistics.
    HealthResponse:  Output schema for health checks.
    ClickEvent:  Transient click record queued for asynchronous persistence.
"""

import datetime

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator

from shortener.enums import HealthStatus

__all__ = [
    "ClickEvent",
    "HealthResponse",
    "LinkCreate",
    "LinkResponse",
    "LinkStats",
    "is_valid_url",
]


def is_valid_url(value: str) -> bool:
    return bool(value) and validators.url(value) is True


class LinkCreate(BaseModel):
    long_url: str

    @field_validator("long_url")
    @classmethod
    def validate_long_url(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_url(v):
            raise ValueError("Invalid URL provided")
        return v


class LinkResponse(BaseModel):
    short_code: str
    long_url: str
    full_short_url: str


class LinkStats(BaseModel):
    short_code: str
    long_url: str
    total_clicks: int
    created_at: datetime.datetime


class HealthResponse(BaseModel):
    status: HealthStatus = HealthStatus.OK


class ClickEvent(BaseModel):
    """One redirect, recorded at the moment the visitor was sent on."""

    model_config = ConfigDict(frozen=True)

    link_id: int = Field(..., description="Primary key of the link that was followed")
    timestamp: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    user_agent: str = ""
    ip_address: str = ""
