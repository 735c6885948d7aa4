"""Event models and helper functions."""

import time
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from frigate_events.constants import MEDIA_CLIP, MEDIA_SNAPSHOT, MEDIA_THUMBNAIL


def to_friendly_name(value: str) -> str:
    """Display form of a Frigate identifier: "front_door" -> "Front Door"."""
    return value.replace("_", " ").title()


def event_media_url(base_url: str, event_id: str, kind: str) -> str:
    """Build {base}/api/events/{id}/{kind} (kind e.g. snapshot.jpg)."""
    return f"{base_url.rstrip('/')}/api/events/{event_id}/{kind}"


class VersionTriple(NamedTuple):
    """Frigate protocol version (major, minor, patch); compares lexicographically."""
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True, slots=True)
class DetectionDetail:
    """Nested Frigate "data" object: detection attributes for the top-scoring frame.
    Box and region are image-fraction coordinates in [0, 1].
    """
    attributes: tuple[str, ...]
    box: tuple[float, float, float, float]
    region: tuple[float, float, float, float]
    score: float
    top_score: float
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "attributes": list(self.attributes),
            "box": list(self.box),
            "region": list(self.region),
            "score": self.score,
            "top_score": self.top_score,
            "type": self.type,
        }


@dataclass(frozen=True, slots=True)
class Event:
    """One Frigate detection episode. Immutable; a later fetch replaces it."""
    id: str
    camera: str
    label: str
    start_time: float
    end_time: float | None = None
    has_clip: bool = False
    has_snapshot: bool = False
    zones: tuple[str, ...] = field(default_factory=tuple)
    data: DetectionDetail | None = None
    box: tuple[float, float, float, float] | None = None
    false_positive: bool | None = None
    plus_id: str | None = None
    retain_indefinitely: bool = False
    sub_label: str | None = None
    top_score: float | None = None

    @property
    def in_progress(self) -> bool:
        """True while Frigate has not reported an end time."""
        return self.end_time is None

    @property
    def duration(self) -> float | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def live_duration(self, now: float | None = None) -> float:
        """Elapsed seconds; for in-progress events measured against now (never stored)."""
        if self.end_time is not None:
            return self.end_time - self.start_time
        if now is None:
            now = time.time()
        return now - self.start_time

    def thumbnail_url(self, base_url: str) -> str:
        return event_media_url(base_url, self.id, MEDIA_THUMBNAIL)

    def snapshot_url(self, base_url: str) -> str:
        return event_media_url(base_url, self.id, MEDIA_SNAPSHOT)

    def clip_url(self, base_url: str) -> str:
        return event_media_url(base_url, self.id, MEDIA_CLIP)

    @property
    def friendly_camera(self) -> str:
        return to_friendly_name(self.camera)

    @property
    def friendly_label(self) -> str:
        return to_friendly_name(self.label)

    @property
    def friendly_zones(self) -> str:
        return ", ".join(to_friendly_name(z) for z in self.zones)

    def to_dict(self, base_url: str | None = None, now: float | None = None) -> dict[str, Any]:
        """Serialize for the JSON API. Media URLs are included when base_url is given."""
        out: dict[str, Any] = {
            "id": self.id,
            "camera": self.camera,
            "label": self.label,
            "sub_label": self.sub_label,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "in_progress": self.in_progress,
            "duration": self.duration,
            "live_duration": self.live_duration(now),
            "has_clip": self.has_clip,
            "has_snapshot": self.has_snapshot,
            "zones": list(self.zones),
            "box": list(self.box) if self.box is not None else None,
            "false_positive": self.false_positive,
            "plus_id": self.plus_id,
            "retain_indefinitely": self.retain_indefinitely,
            "top_score": self.top_score,
            "data": self.data.to_dict() if self.data is not None else None,
            "friendly_camera": self.friendly_camera,
            "friendly_label": self.friendly_label,
            "friendly_zones": self.friendly_zones,
        }
        if base_url:
            out["thumbnail_url"] = self.thumbnail_url(base_url)
            out["snapshot_url"] = self.snapshot_url(base_url) if self.has_snapshot else None
            out["clip_url"] = self.clip_url(base_url) if self.has_clip else None
        return out


@dataclass(slots=True)
class FacetSet:
    """Filter values observed so far. Only ever grows."""
    labels: set[str] = field(default_factory=set)
    zones: set[str] = field(default_factory=set)
    cameras: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "labels": sorted(self.labels),
            "zones": sorted(self.zones),
            "cameras": sorted(self.cameras),
        }


@dataclass(slots=True)
class Selection:
    """User-selected filter values. An empty set means no filter for that facet."""
    labels: set[str] = field(default_factory=set)
    zones: set[str] = field(default_factory=set)
    cameras: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "labels": sorted(self.labels),
            "zones": sorted(self.zones),
            "cameras": sorted(self.cameras),
        }


# Facet names shared by FacetSet, Selection and the settings store keys.
FACETS: tuple[str, ...] = ("labels", "zones", "cameras")
