"""Facet tracking: learn filterable labels, zones and cameras from observed events."""

import logging
from collections.abc import Iterable

from frigate_events.managers.settings import SettingsStore
from frigate_events.models import Event, FacetSet

logger = logging.getLogger("frigate-events")


class FacetTracker:
    """Merges observed facet values into the persisted available sets.

    Available sets only grow; a write happens only when a set actually grows,
    so merging the same batch twice persists at most once. Selections are
    never touched here.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    @staticmethod
    def observed(events: Iterable[Event]) -> FacetSet:
        facets = FacetSet()
        for event in events:
            facets.labels.add(event.label)
            facets.zones.update(event.zones)
            facets.cameras.add(event.camera)
        return facets

    def merge_observed(self, events: Iterable[Event]) -> bool:
        """Union labels/zones/cameras seen in events into the available sets.
        Returns True if anything was persisted.
        """
        seen = self.observed(events)
        grew = False
        for facet in ("labels", "zones", "cameras"):
            values = getattr(seen, facet)
            if values and self._store.add_available(facet, values):
                grew = True
        return grew

    def merge_cameras(self, cameras: Iterable[str]) -> bool:
        """Union camera names from /api/config into the available cameras."""
        names = {c for c in cameras if c}
        if not names:
            return False
        return self._store.add_available("cameras", names)

    def available(self) -> FacetSet:
        return self._store.available()
