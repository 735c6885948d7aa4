"""Selection filtering for event lists (label, zone, camera)."""

from collections.abc import Iterable

from frigate_events.models import Event, Selection


def matches_selection(event: Event, selection: Selection) -> bool:
    """True if the event passes every facet of the selection.

    An empty set for a facet means no filter. For zones, the event must be in
    at least one selected zone; an event with no zones never matches a
    non-empty zone selection.
    """
    if selection.labels and event.label not in selection.labels:
        return False
    if selection.zones and selection.zones.isdisjoint(event.zones):
        return False
    if selection.cameras and event.camera not in selection.cameras:
        return False
    return True


def apply_filters(events: Iterable[Event], selection: Selection) -> list[Event]:
    """Events passing the selection, original order preserved."""
    return [e for e in events if matches_selection(e, selection)]
