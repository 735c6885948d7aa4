"""Service modules."""

from frigate_events.services.feed import FeedCoordinator
from frigate_events.services.frigate_api import FrigateEventRepository
from frigate_events.services.normalizer import ResponseNormalizer
from frigate_events.services.version import VersionNegotiator

__all__ = [
    "FeedCoordinator",
    "FrigateEventRepository",
    "ResponseNormalizer",
    "VersionNegotiator",
]
