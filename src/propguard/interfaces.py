"""Contracts for the collaborators the engine talks to.

The engine never renders UI, performs HTTP or stores anything itself.
It reaches the surrounding application through these seams:

- ``SubjectFetcher`` — loads the current user payload (login / refresh).
- ``NotificationSink`` — shows a non-blocking notification (toast).
- ``HierarchyLookup`` — reads floor / room / bed records to find a building.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Awaitable, Protocol, runtime_checkable

from pydantic import BaseModel


class NotificationKind(str, Enum):
    """Visual category of a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A single non-blocking message for the notification sink."""

    model_config = {"frozen": True, "use_enum_values": True}

    message: str
    kind: NotificationKind = NotificationKind.WARNING


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can display a :class:`Notification`."""

    def notify(self, notification: Notification) -> None: ...


class SubjectFetcher(Protocol):
    """Async callable returning the backend user payload, or None if signed out."""

    def __call__(self) -> Awaitable[Mapping[str, Any] | None]: ...


@runtime_checkable
class HierarchyLookup(Protocol):
    """Read access to the property hierarchy, keyed by record id."""

    async def get_floor(self, floor_id: Any) -> Mapping[str, Any] | None: ...

    async def get_room(self, room_id: Any) -> Mapping[str, Any] | None: ...

    async def get_bed(self, bed_id: Any) -> Mapping[str, Any] | None: ...


__all__ = [
    "HierarchyLookup",
    "Notification",
    "NotificationKind",
    "NotificationSink",
    "SubjectFetcher",
]
