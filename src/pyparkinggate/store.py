"""In-memory zone occupancy store for the active gate."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import UserType, Zone

_LOGGER = logging.getLogger(__name__)


class ZoneStore:
    """Zone snapshots keyed by zone id.

    The store holds whatever the authority reports. Capacity figures that do
    not add up are logged, never corrected.
    """

    def __init__(self) -> None:
        self._zones: dict[str, Zone] = {}

    @property
    def zones(self) -> list[Zone]:
        return list(self._zones.values())

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self._zones

    def get(self, zone_id: str) -> Zone | None:
        return self._zones.get(zone_id)

    def load_snapshot(self, zones: Iterable[Zone]) -> None:
        """Replace the whole working set."""
        snapshot: dict[str, Zone] = {}
        for zone in zones:
            self._check_capacity(zone)
            snapshot[zone.id] = zone
        self._zones = snapshot
        _LOGGER.debug("Zone snapshot loaded count=%s", len(snapshot))

    def apply_update(self, zone: Zone) -> bool:
        """Replace the entry for ``zone.id``; unknown zones are dropped."""
        if zone.id not in self._zones:
            _LOGGER.debug("Dropping update for untracked zone %s", zone.id)
            return False
        self._check_capacity(zone)
        self._zones[zone.id] = zone
        return True

    def clear(self) -> None:
        self._zones = {}

    def zones_for_gate(self, gate_id: str) -> list[Zone]:
        return [zone for zone in self._zones.values() if gate_id in zone.gate_ids]

    @staticmethod
    def eligibility(
        zone: Zone,
        user_type: UserType,
        *,
        category_id: str | None = None,
    ) -> bool:
        """Return whether ``zone`` can take a new vehicle of ``user_type``."""
        if not zone.open:
            return False
        if user_type == "subscriber" and (category_id is None or zone.category_id != category_id):
            return False
        return zone.available_for(user_type) > 0

    def _check_capacity(self, zone: Zone) -> None:
        if zone.occupied + zone.free != zone.total_slots:
            _LOGGER.warning(
                "Zone %s reports occupied=%s free=%s total=%s",
                zone.id,
                zone.occupied,
                zone.free,
                zone.total_slots,
            )
        if zone.available_for_visitors > zone.free or zone.available_for_subscribers > zone.free:
            _LOGGER.warning(
                "Zone %s reports availability above free capacity "
                "visitors=%s subscribers=%s free=%s",
                zone.id,
                zone.available_for_visitors,
                zone.available_for_subscribers,
                zone.free,
            )
