"""
Response normalization: turn a raw /api/events body into a list of Events.

Frigate has changed the shape of /api/events across releases (plain array,
wrapped in "events"/"data"/"results", older field conventions) and does not
negotiate a format. Parsing is therefore an ordered list of strategies per
version tier, each a pure function ``bytes -> list[Event]`` that raises
StrategyFailed when the body does not have its shape. The first strategy that
succeeds wins. If a whole tier fails, a version-independent fallback list is
tried before giving up with DecodingError.
"""

import logging
from typing import Any, Callable

from frigate_events.constants import EVENT_WRAPPER_KEYS
from frigate_events.errors import DecodingError
from frigate_events.models import DetectionDetail, Event, VersionTriple
from frigate_events.services.json_fields import (
    as_object,
    as_object_list,
    get_bool,
    get_float_tuple4,
    get_number,
    get_object,
    get_str,
    get_str_list,
    is_float,
    parse_json,
)

logger = logging.getLogger("frigate-events")

Strategy = Callable[[bytes], list[Event]]

# Fields every event record must carry, besides start_time and zones.
REQUIRED_STR_FIELDS = ("id", "camera", "label")
REQUIRED_BOOL_FIELDS = ("has_clip", "has_snapshot", "retain_indefinitely")


class StrategyFailed(Exception):
    """Body does not match the shape a strategy expects."""


# ---------------------------------------------------------------------------
# Record extraction
# ---------------------------------------------------------------------------


def normalize_sub_label(sub_label: Any) -> str | None:
    """Extract the sub_label name. Older Frigate sends [name, score]."""
    if isinstance(sub_label, str):
        return sub_label.strip() or None
    if isinstance(sub_label, (list, tuple)) and len(sub_label) > 0:
        first = sub_label[0]
        if isinstance(first, str):
            return first.strip() or None
    return None


def extract_detection(obj: dict[str, Any] | None) -> DetectionDetail | None:
    """Build DetectionDetail from the nested "data" object; all fields or nothing."""
    if obj is None:
        return None
    attributes = get_str_list(obj, "attributes")
    box = get_float_tuple4(obj, "box")
    region = get_float_tuple4(obj, "region")
    score = get_number(obj, "score")
    top_score = get_number(obj, "top_score")
    type_ = get_str(obj, "type")
    if (
        attributes is None
        or box is None
        or region is None
        or score is None
        or top_score is None
        or type_ is None
    ):
        return None
    return DetectionDetail(
        attributes=tuple(attributes),
        box=box,
        region=region,
        score=score,
        top_score=top_score,
        type=type_,
    )


def extract_event(obj: dict[str, Any], legacy: bool = False) -> Event | None:
    """Build an Event from one generic JSON object, or None if a mandatory field
    is missing or mistyped. Malformed optional fields become None.

    legacy=True also accepts the pre-0.13 [name, score] sub_label form.
    """
    strs = {key: get_str(obj, key) for key in REQUIRED_STR_FIELDS}
    bools = {key: get_bool(obj, key) for key in REQUIRED_BOOL_FIELDS}
    start_time = get_number(obj, "start_time")
    zones = get_str_list(obj, "zones")
    if (
        any(v is None for v in strs.values())
        or any(v is None for v in bools.values())
        or start_time is None
        or zones is None
    ):
        return None

    if legacy:
        sub_label = normalize_sub_label(obj.get("sub_label"))
    else:
        sub_label = get_str(obj, "sub_label")

    return Event(
        id=strs["id"],
        camera=strs["camera"],
        label=strs["label"],
        start_time=start_time,
        end_time=get_number(obj, "end_time"),
        has_clip=bools["has_clip"],
        has_snapshot=bools["has_snapshot"],
        zones=tuple(zones),
        data=extract_detection(get_object(obj, "data")),
        box=get_float_tuple4(obj, "box"),
        false_positive=get_bool(obj, "false_positive"),
        plus_id=get_str(obj, "plus_id"),
        retain_indefinitely=bools["retain_indefinitely"],
        sub_label=sub_label,
        top_score=get_number(obj, "top_score"),
    )


def _optional_ok(obj: dict[str, Any], key: str, check: Callable[[Any], bool]) -> bool:
    value = obj.get(key)
    return value is None or check(value)


def _is_float4(value: Any) -> bool:
    return isinstance(value, list) and len(value) == 4 and all(is_float(v) for v in value)


def decode_event_strict(obj: Any) -> Event:
    """Strict record decode: mandatory fields as extract_event, and optional
    fields that are present and non-null must also be well-formed.
    """
    if not isinstance(obj, dict):
        raise StrategyFailed("event record is not an object")
    event = extract_event(obj)
    if event is None:
        raise StrategyFailed(f"event record missing required fields: {obj.get('id')!r}")
    checks = (
        ("end_time", is_float),
        ("top_score", is_float),
        ("box", _is_float4),
        ("false_positive", lambda v: isinstance(v, bool)),
        ("plus_id", lambda v: isinstance(v, str)),
        ("sub_label", lambda v: isinstance(v, str)),
        ("data", lambda v: extract_detection(as_object(v)) is not None),
    )
    for key, check in checks:
        if not _optional_ok(obj, key, check):
            raise StrategyFailed(f"event {event.id!r}: malformed field {key!r}")
    return event


def _extract_each(records: list[dict[str, Any]], legacy: bool) -> list[Event]:
    """Element-wise extraction: bad records are skipped, not fatal."""
    events = []
    for index, record in enumerate(records):
        event = extract_event(record, legacy=legacy)
        if event is None:
            logger.debug("Skipping malformed event record at index %d (id=%r)", index, record.get("id"))
            continue
        events.append(event)
    return events


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _load(raw: bytes) -> Any:
    try:
        return parse_json(raw)
    except ValueError as e:
        raise StrategyFailed(f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise StrategyFailed("JSON nested too deeply") from e


def decode_direct_array(raw: bytes) -> list[Event]:
    """Top-level JSON array where every record decodes strictly."""
    body = _load(raw)
    if not isinstance(body, list):
        raise StrategyFailed("body is not a JSON array")
    return [decode_event_strict(record) for record in body]


def decode_legacy_array(raw: bytes) -> list[Event]:
    """Top-level array of objects, each extracted with the legacy extractor."""
    records = as_object_list(_load(raw))
    if records is None:
        raise StrategyFailed("body is not an array of objects")
    return _extract_each(records, legacy=True)


def wrapped_array(key: str) -> Strategy:
    """Strategy for a JSON object holding the events array under ``key``."""

    def strategy(raw: bytes) -> list[Event]:
        body = as_object(_load(raw))
        if body is None:
            raise StrategyFailed("body is not a JSON object")
        records = as_object_list(body.get(key))
        if records is None:
            raise StrategyFailed(f"no event array under {key!r} (keys: {sorted(body)})")
        return _extract_each(records, legacy=False)

    strategy.__name__ = f"wrapped_{key}"
    return strategy


WRAPPED_STRATEGIES: tuple[Strategy, ...] = tuple(wrapped_array(key) for key in EVENT_WRAPPER_KEYS)
wrapped_events, wrapped_data, wrapped_results = WRAPPED_STRATEGIES

# Strategy order per version tier. The >= 0.16 tier ends with the legacy path;
# its trailing direct decode is omitted since it already ran first.
TIER_STRATEGIES: dict[str, tuple[Strategy, ...]] = {
    "0.16+": (decode_direct_array, *WRAPPED_STRATEGIES, decode_legacy_array),
    "0.15": (decode_direct_array, wrapped_events),
    "0.13": (decode_direct_array,),
    "0.12": (decode_direct_array, decode_legacy_array),
    "legacy": (decode_legacy_array, decode_direct_array),
}

FALLBACK_STRATEGIES: tuple[Strategy, ...] = (
    decode_direct_array,
    *WRAPPED_STRATEGIES,
    decode_legacy_array,
)


def version_tier(version: VersionTriple) -> str:
    """Map a version to its parsing tier key in TIER_STRATEGIES."""
    major_minor = (version.major, version.minor)
    if major_minor >= (0, 16):
        return "0.16+"
    if major_minor >= (0, 15):
        return "0.15"
    if major_minor >= (0, 13):
        return "0.13"
    if major_minor >= (0, 12):
        return "0.12"
    return "legacy"


def strategies_for(version: VersionTriple) -> tuple[Strategy, ...]:
    return TIER_STRATEGIES[version_tier(version)]


def run_strategies(raw: bytes, strategies: tuple[Strategy, ...], context: str) -> list[Event]:
    """Apply strategies in order; return the first success or raise DecodingError."""
    for strategy in strategies:
        try:
            events = strategy(raw)
        except StrategyFailed as e:
            logger.debug("%s: strategy %s failed: %s", context, strategy.__name__, e)
            continue
        logger.debug("%s: parsed %d event(s) with %s", context, len(events), strategy.__name__)
        return events
    raise DecodingError(byte_length=len(raw))


class ResponseNormalizer:
    """Converts /api/events bodies into Events using the version-tiered cascade."""

    def normalize_for_version(self, raw: bytes, version: VersionTriple) -> list[Event]:
        """Version-tiered attempt only; raises DecodingError if the tier is exhausted."""
        tier = version_tier(version)
        return run_strategies(raw, TIER_STRATEGIES[tier], f"v{version} ({tier} tier)")

    def normalize_with_fallback(self, raw: bytes) -> list[Event]:
        """Version-independent fallback cascade; raises DecodingError with the byte length."""
        try:
            return run_strategies(raw, FALLBACK_STRATEGIES, "fallback")
        except DecodingError:
            logger.warning("Could not parse events with any known format (%d bytes)", len(raw))
            raise

    def normalize(self, raw: bytes, version: VersionTriple) -> list[Event]:
        """Version-tiered attempt, then the global fallback on the same body."""
        try:
            return self.normalize_for_version(raw, version)
        except DecodingError:
            logger.info("Version-based parsing failed for v%s, trying fallback", version)
            return self.normalize_with_fallback(raw)
