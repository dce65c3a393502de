import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from config import Config
from date_window import to_timestamp
from errors import PreconditionViolation
from models import MembershipRecord, MembershipStatus


logger = logging.getLogger(__name__)


class Filter(ABC):
    """Abstract base class for all segment filters"""

    @abstractmethod
    def should_exclude(self, record: MembershipRecord) -> bool:
        """Return True if the record should be excluded"""
        pass

    def get_description(self) -> str:
        """Get a human-readable description of this filter"""
        return self.__class__.__name__


class StatusFilter(Filter):
    """Keep records whose stored status is one of the given statuses"""

    def __init__(self, statuses: Iterable[Any]):
        self.statuses = [MembershipStatus.from_value(s) for s in statuses]
        if not self.statuses:
            raise PreconditionViolation("StatusFilter needs at least one status")

    def should_exclude(self, record: MembershipRecord) -> bool:
        return record.status not in self.statuses

    def get_description(self) -> str:
        return f"Only include statuses: {', '.join(s.value for s in self.statuses)}"


class LocationFilter(Filter):
    """Keep records at one of the given studios"""

    def __init__(self, locations: Iterable[str]):
        self.locations = [str(loc).strip() for loc in locations]
        if not self.locations:
            raise PreconditionViolation("LocationFilter needs at least one location")

    def should_exclude(self, record: MembershipRecord) -> bool:
        return record.location not in self.locations

    def get_description(self) -> str:
        return f"Only include locations: {', '.join(self.locations)}"


class TierFilter(Filter):
    """Keep premium-tier plans (substring match on the membership name)"""

    def __init__(self, keywords: Optional[List[str]] = None):
        self.keywords = keywords or Config.PREMIUM_KEYWORDS

    def should_exclude(self, record: MembershipRecord) -> bool:
        return not record.is_premium(self.keywords)

    def get_description(self) -> str:
        return f"Only include plans containing: {' / '.join(self.keywords)}"


class SessionsRangeFilter(Filter):
    """Filter by remaining session count, bounds inclusive and optional"""

    def __init__(self, min_sessions: Optional[int] = None, max_sessions: Optional[int] = None):
        if min_sessions is not None and max_sessions is not None and min_sessions > max_sessions:
            raise PreconditionViolation(f"min_sessions {min_sessions} > max_sessions {max_sessions}")
        self.min_sessions = min_sessions
        self.max_sessions = max_sessions

    def should_exclude(self, record: MembershipRecord) -> bool:
        if self.min_sessions is not None and record.sessions_left < self.min_sessions:
            return True
        if self.max_sessions is not None and record.sessions_left > self.max_sessions:
            return True
        return False

    def get_description(self) -> str:
        low = self.min_sessions if self.min_sessions is not None else 0
        high = self.max_sessions if self.max_sessions is not None else "∞"
        return f"Only include {low}-{high} sessions left"


class EndDateRangeFilter(Filter):
    """Keep records whose end date lies in [start, end], either bound optional"""

    def __init__(self, start: Any = None, end: Any = None):
        self.start = to_timestamp(start, "start") if start is not None else None
        self.end = to_timestamp(end, "end") if end is not None else None
        if self.start is not None and self.end is not None and self.start > self.end:
            raise PreconditionViolation(f"Range start {self.start} is after end {self.end}")
        # a date-only end bound covers that whole day
        self.whole_end_day = self.end is not None and self.end == self.end.normalize()

    def should_exclude(self, record: MembershipRecord) -> bool:
        if self.start is not None and record.end_date < self.start:
            return True
        if self.end is not None:
            if self.whole_end_day:
                return record.end_date.normalize() > self.end
            return record.end_date > self.end
        return False

    def get_description(self) -> str:
        start = self.start.date() if self.start is not None else "any"
        end = self.end.date() if self.end is not None else "any"
        return f"Only include end dates between {start} and {end}"


class RecencyFilter(Filter):
    """Keep records ordered within the last `days` days before `now`"""

    def __init__(self, days: int, now: Any):
        if days < 0:
            raise PreconditionViolation(f"days must be non-negative, got {days}")
        self.days = days
        self.cutoff = to_timestamp(now, "now") - pd.Timedelta(days=days)

    def should_exclude(self, record: MembershipRecord) -> bool:
        return record.order_date < self.cutoff

    def get_description(self) -> str:
        return f"Only include orders from the last {self.days} days"


class ExpiringWithinFilter(Filter):
    """Keep records ending between `now` and `days` days after it"""

    def __init__(self, days: int, now: Any):
        if days < 0:
            raise PreconditionViolation(f"days must be non-negative, got {days}")
        self.days = days
        self.now = to_timestamp(now, "now")
        self.horizon = self.now + pd.Timedelta(days=days)

    def should_exclude(self, record: MembershipRecord) -> bool:
        return not (self.now <= record.end_date <= self.horizon)

    def get_description(self) -> str:
        return f"Only include memberships expiring in the next {self.days} days"


class PaidAboveFilter(Filter):
    """Keep records whose paid amount is strictly above `min_amount`"""

    def __init__(self, min_amount: float):
        self.min_amount = min_amount

    def should_exclude(self, record: MembershipRecord) -> bool:
        amount = record.paid_amount()
        return amount is None or amount <= self.min_amount

    def get_description(self) -> str:
        return f"Only include payments above {self.min_amount}"


class SearchFilter(Filter):
    """Case-insensitive free-text match over name, email, ids, plan and location"""

    def __init__(self, term: str):
        self.term = (term or "").strip().lower()

    def should_exclude(self, record: MembershipRecord) -> bool:
        if not self.term:
            return False
        haystack = [record.first_name, record.last_name, record.email,
                    record.member_id, record.membership_name, record.location]
        return not any(self.term in (value or "").lower() for value in haystack)

    def get_description(self) -> str:
        return f"Search: {self.term!r}"


class FilterChain:
    """Chain multiple filters together (logical AND) with record tracking"""

    def __init__(self, filters: Optional[List[Filter]] = None):
        self.filters: List[Filter] = list(filters or [])
        self.filter_stats: Dict[str, Dict[str, float]] = {}

    def add_filter(self, filter_obj: Filter) -> 'FilterChain':
        """Add a filter to the chain"""
        self.filters.append(filter_obj)
        return self

    def apply(self, records: Sequence[MembershipRecord]) -> List[MembershipRecord]:
        """Apply all filters, keeping input order, with per-filter tracking"""
        kept = list(records)
        total_rows = len(kept)

        # Reset filter stats
        self.filter_stats = {}

        for filter_obj in self.filters:
            before = len(kept)
            kept = [record for record in kept if not filter_obj.should_exclude(record)]

            excluded_count = before - len(kept)
            self.filter_stats[self._stats_key(filter_obj.get_description())] = {
                'excluded': excluded_count,
                'included': len(kept),
                'excluded_percentage': _percentage(excluded_count, total_rows),
                'included_percentage': _percentage(len(kept), total_rows),
            }

        if self.filters:
            logger.info("Filters kept %d of %d records", len(kept), total_rows)
        return kept

    def _stats_key(self, description: str) -> str:
        """Description, suffixed with its occurrence number when repeated"""
        key, n = description, 1
        while key in self.filter_stats:
            n += 1
            key = f"{description} (#{n})"
        return key

    def get_active_filters(self) -> List[str]:
        """Get descriptions of all active filters"""
        return [f.get_description() for f in self.filters]

    def get_filter_stats(self) -> Dict[str, Dict[str, float]]:
        """Get detailed statistics for each filter"""
        return self.filter_stats

    def get_summary_stats(self) -> Dict[str, int]:
        """Get overall filtering summary"""
        if not self.filter_stats:
            return {}

        total_excluded = sum(stats['excluded'] for stats in self.filter_stats.values())
        total_included = list(self.filter_stats.values())[-1]['included']

        return {
            'total_filters': len(self.filters),
            'total_excluded': total_excluded,
            'total_included': total_included,
            'total_original': total_excluded + total_included
        }


def _percentage(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def apply_segment_filter(records: Sequence[MembershipRecord],
                         filters: Optional[Iterable[Filter]] = None) -> List[MembershipRecord]:
    """Stateless entry point: records passing every filter, input order kept"""
    return FilterChain(list(filters or [])).apply(records)
