"""Locate the building scope of a floor, room or bed.

Row actions on rooms and beds are checked against the building the row
belongs to. Records do not always carry it directly, so the locator
walks up the hierarchy (bed → room → floor → building) through a
:class:`HierarchyLookup`.

References may be plain ids, ``{"id": ...}`` stubs or full records.
Nothing is cached; lookup errors propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional

from .interfaces import HierarchyLookup
from .permissions.constants import normalize_scope

logger = logging.getLogger(__name__)

Fetch = Callable[[Any], Awaitable[Optional[Mapping[str, Any]]]]


def _ref_id(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("id")
    return value


def _field(record: Mapping[str, Any], name: str) -> Any:
    value = record.get(name)
    if value is None:
        value = record.get(f"{name}_id")
    return value


def direct_building(record: Mapping[str, Any]) -> str | None:
    """Building scope stored on the record itself, if any."""
    return normalize_scope(_ref_id(_field(record, "building")))


class ScopeLocator:
    """Derives building scopes through a hierarchy lookup.

    Example::

        locator = ScopeLocator(properties_client)
        scope = await locator.building_for_bed(bed)
        if scope is not None and evaluator.can("beds", "edit", scope):
            ...
    """

    def __init__(self, lookup: HierarchyLookup) -> None:
        self._lookup = lookup

    async def _record(self, ref: Any, fetch: Fetch, parent: str) -> Mapping[str, Any] | None:
        """Return a usable record for ``ref``, fetching when it is only an id."""
        if ref is None:
            return None
        if isinstance(ref, Mapping):
            if direct_building(ref) is not None or _field(ref, parent) is not None:
                return ref
            ref = ref.get("id")
            if ref is None:
                return None
        record = await fetch(ref)
        if record is None:
            logger.debug("Hierarchy lookup found nothing for %r", ref)
        return record

    async def building_for_floor(self, floor: Any) -> str | None:
        record = await self._record(floor, self._lookup.get_floor, "building")
        if record is None:
            return None
        return direct_building(record)

    async def building_for_room(self, room: Any) -> str | None:
        record = await self._record(room, self._lookup.get_room, "floor")
        if record is None:
            return None
        building = direct_building(record)
        if building is not None:
            return building
        return await self.building_for_floor(_field(record, "floor"))

    async def building_for_bed(self, bed: Any) -> str | None:
        """Building of a bed, walking bed → room → floor as needed."""
        record = await self._record(bed, self._lookup.get_bed, "room")
        if record is None:
            return None
        building = direct_building(record)
        if building is not None:
            return building
        return await self.building_for_room(_field(record, "room"))


__all__ = ["ScopeLocator", "direct_building"]
