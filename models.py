from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from config import Config
from date_window import to_timestamp
from errors import PreconditionViolation


class MembershipStatus(Enum):
    """Authoritative membership status as stored in the source sheet"""
    ACTIVE = "Active"
    EXPIRED = "Expired"

    @classmethod
    def from_value(cls, value: Any) -> "MembershipStatus":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for status in cls:
            if status.value.lower() == text:
                return status
        raise PreconditionViolation(f"Unknown membership status: {value!r}")


class PerformanceTier(Enum):
    """Studio performance label derived from churn rate"""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NEEDS_ATTENTION = "Needs Attention"

    @classmethod
    def from_churn_rate(cls, churn_rate: float) -> "PerformanceTier":
        if churn_rate <= Config.TIER_THRESHOLDS["Excellent"]:
            return cls.EXCELLENT
        if churn_rate <= Config.TIER_THRESHOLDS["Good"]:
            return cls.GOOD
        return cls.NEEDS_ATTENTION


@dataclass
class MembershipRecord:
    """One purchased membership term for one customer"""
    unique_id: str
    member_id: str
    order_date: pd.Timestamp
    start_date: pd.Timestamp
    end_date: pd.Timestamp
    status: MembershipStatus
    sessions_left: int
    location: str = ""
    membership_name: str = ""
    paid: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    comments: str = ""
    notes: str = ""
    tags: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.unique_id = str(self.unique_id)
        self.member_id = str(self.member_id)
        self.order_date = to_timestamp(self.order_date, "order_date")
        self.start_date = to_timestamp(self.start_date, "start_date")
        self.end_date = to_timestamp(self.end_date, "end_date")
        self.status = MembershipStatus.from_value(self.status)
        self.sessions_left = _to_session_count(self.sessions_left)
        self.location = str(self.location or "").strip()
        self.membership_name = str(self.membership_name or "")
        self.paid = str(self.paid or "").strip()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_premium(self, keywords: Optional[List[str]] = None) -> bool:
        name = self.membership_name.lower()
        return any(k.lower() in name for k in (keywords or Config.PREMIUM_KEYWORDS))

    def paid_amount(self) -> Optional[float]:
        """Parsed paid amount, or None for empty/'-' entries"""
        text = self.paid
        if text in Config.UNPAID_MARKERS:
            return None
        cleaned = text.replace(",", "").lstrip("₹$€£ ")
        try:
            return float(cleaned)
        except ValueError as e:
            raise PreconditionViolation(f"Unparseable paid amount {text!r} on {self.unique_id}") from e


def _to_session_count(value: Any) -> int:
    if isinstance(value, bool):
        raise PreconditionViolation(f"sessions_left must be an integer, got {value!r}")
    try:
        count = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as e:
        raise PreconditionViolation(f"sessions_left must be an integer, got {value!r}") from e
    if isinstance(value, float) and value != count:
        raise PreconditionViolation(f"sessions_left must be an integer, got {value!r}")
    if count < 0:
        raise PreconditionViolation(f"sessions_left must be non-negative, got {count}")
    return count


@dataclass(frozen=True)
class RecordClassification:
    """Which monthly cohorts a single record falls in"""
    starting: bool
    new: bool
    expired_in_month: bool
    ending: bool


@dataclass
class MonthlyChurnMetric:
    """Data class for monthly churn metrics"""
    month_label: str
    month_start: pd.Timestamp
    starting_members: int
    new_members: int
    expired_members: int
    ending_members: int
    churn_rate: float

    @property
    def churn_count(self) -> int:
        return self.expired_members

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["month_start"] = self.month_start.date().isoformat()
        data["churn_count"] = self.churn_count
        return data


@dataclass
class StudioChurnMetric:
    """Current-month churn for one studio"""
    location: str
    month_label: str
    starting_members: int
    expired_members: int
    churn_rate: float

    @property
    def performance_tier(self) -> PerformanceTier:
        return PerformanceTier.from_churn_rate(self.churn_rate)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["performance_tier"] = self.performance_tier.value
        return data


@dataclass
class ChurnAnalysisResult:
    """Monthly series plus the current/previous month comparison"""
    monthly_metrics: List[MonthlyChurnMetric]

    @property
    def current_month(self) -> Optional[MonthlyChurnMetric]:
        return self.monthly_metrics[-1] if self.monthly_metrics else None

    @property
    def previous_month(self) -> Optional[MonthlyChurnMetric]:
        if len(self.monthly_metrics) < 2:
            return None
        return self.monthly_metrics[-2]

    @property
    def churn_change(self) -> Optional[float]:
        """Current minus previous churn rate; None when there is nothing to compare"""
        if self.previous_month is None:
            return None
        return round(self.current_month.churn_rate - self.previous_month.churn_rate, 2)


@dataclass
class MembershipOverview:
    """Headline counts shown above the dashboard"""
    total_members: int
    active_members: int
    expired_members: int
    members_with_sessions: int
    expiring_this_month: int
