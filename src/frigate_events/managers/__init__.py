"""Manager modules for persisted settings, facet tracking, and selection filtering."""

from frigate_events.managers.facets import FacetTracker
from frigate_events.managers.filters import apply_filters, matches_selection
from frigate_events.managers.settings import SettingsStore

__all__ = [
    "FacetTracker",
    "SettingsStore",
    "apply_filters",
    "matches_selection",
]
