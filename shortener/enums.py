"""Shared enums for the URL shortener application.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "LinkState", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    OK = "ok"


class LinkState(StrEnum):
    """Last known reachability of a link destination, as seen by the monitor."""

    UNKNOWN = "UNKNOWN"
    ACCESSIBLE = "ACCESSIBLE"
    INACCESSIBLE = "INACCESSIBLE"

    @classmethod
    def from_probe(cls, accessible: bool) -> "LinkState":
        return cls.ACCESSIBLE if accessible else cls.INACCESSIBLE


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    COLLISION_EXHAUSTED = "collision_exhausted"
    ERROR = "error"
    NOT_FOUND = "not_found"
