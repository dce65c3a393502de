from typing import Any, Dict, List, Sequence

from config import Config
from errors import PreconditionViolation
from filters import (ExpiringWithinFilter, Filter, LocationFilter, RecencyFilter,
                     SessionsRangeFilter, StatusFilter, TierFilter, apply_segment_filter)
from models import MembershipRecord, MembershipStatus
from studio_analysis_service import StudioAnalysisService

LOCATION_PREFIX = "location-"

QUICK_FILTER_KEYS = [
    "all", "active", "expired",
    *Config.SESSION_BANDS,
    *Config.RECENCY_BANDS,
    *Config.EXPIRY_BANDS,
    "premium",
]


def build_quick_filters(key: str, now: Any) -> List[Filter]:
    """
    Translate a dashboard quick-filter key into typed filters

    Args:
        key: One of QUICK_FILTER_KEYS or 'location-<studio>'
        now: Reference instant for the recency and expiry bands

    Returns:
        Filters to AND together ('all' yields none)
    """
    if key == "all":
        return []
    if key == "active":
        return [StatusFilter([MembershipStatus.ACTIVE])]
    if key == "expired":
        return [StatusFilter([MembershipStatus.EXPIRED])]
    if key == "premium":
        return [TierFilter()]
    if key in Config.SESSION_BANDS:
        low, high = Config.SESSION_BANDS[key]
        return [SessionsRangeFilter(low, high)]
    if key in Config.RECENCY_BANDS:
        return [RecencyFilter(Config.RECENCY_BANDS[key], now)]
    if key in Config.EXPIRY_BANDS:
        return [ExpiringWithinFilter(Config.EXPIRY_BANDS[key], now)]
    if key.startswith(LOCATION_PREFIX) and len(key) > len(LOCATION_PREFIX):
        return [LocationFilter([key[len(LOCATION_PREFIX):]])]
    raise PreconditionViolation(f"Unknown quick filter: {key!r}")


def quick_filter_counts(records: Sequence[MembershipRecord], now: Any) -> Dict[str, int]:
    """Record count behind every quick-filter badge, locations capped at MAX_LOCATION_FACETS"""
    locations = StudioAnalysisService.get_locations(records)[:Config.MAX_LOCATION_FACETS]
    keys = QUICK_FILTER_KEYS + [f"{LOCATION_PREFIX}{loc}" for loc in locations]
    return {key: len(apply_segment_filter(records, build_quick_filters(key, now))) for key in keys}
