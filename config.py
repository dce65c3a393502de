import logging
import os
from typing import Dict, List


class Config:
    """Centralized configuration for the membership churn analysis system"""

    # File paths
    MEMBERSHIPS_FILE = os.environ.get("MEMBERSHIPS_FILE", "data/memberships.csv")
    EXPORT_DIR = "exports"

    # Column names (membership sheet export -> logical field)
    COLUMNS = {
        "unique_id": "Unique Id",
        "member_id": "Member Id",
        "first_name": "First Name",
        "last_name": "Last Name",
        "email": "Email",
        "membership_name": "Membership Name",
        "order_date": "Order At",
        "start_date": "Start Date",
        "end_date": "End Date",
        "status": "Status",
        "sessions_left": "Sessions Left",
        "location": "Location",
        "paid": "Paid",
        "comments": "Comments",
        "notes": "Notes",
        "tags": "Tags",
    }

    REQUIRED_COLUMNS = [
        "unique_id", "member_id", "order_date", "start_date",
        "end_date", "status", "sessions_left", "location",
    ]

    # Dates in the export are ISO-8601 (YYYY-MM-DD, optional time part)
    DATE_FORMAT = "ISO8601"
    MONTH_LABEL_FORMAT = "%B %Y"

    # Analysis parameters
    DEFAULT_WINDOW_MONTHS = 12

    # Studio performance tiers, upper bounds are inclusive
    TIER_THRESHOLDS = {
        "Excellent": 5.0,
        "Good": 10.0,
    }
    PREMIUM_KEYWORDS = ["premium", "unlimited"]
    UNPAID_MARKERS = ["", "-"]

    # Quick filter bands
    RECENCY_BANDS = {
        "weekly": 7,
        "recent": 30,
        "quarterly": 90,
        "half-year": 180,
    }
    EXPIRY_BANDS = {
        "expiring-week": 7,
        "expiring": 30,
    }
    SESSION_BANDS = {
        "sessions": (1, None),
        "no-sessions": (0, 0),
        "low-sessions": (1, 2),
        "high-sessions": (11, None),
    }
    MAX_LOCATION_FACETS = 6

    # Logging
    LOG_LEVEL = os.environ.get("CHURN_LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    @classmethod
    def get_column(cls, key: str) -> str:
        """Get column name by key"""
        return cls.COLUMNS.get(key, key)

    @classmethod
    def get_required_columns(cls) -> List[str]:
        """Physical names of the columns a membership export must carry"""
        return [cls.get_column(key) for key in cls.REQUIRED_COLUMNS]

    @classmethod
    def get_column_renames(cls) -> Dict[str, str]:
        """Mapping physical column -> logical field, for DataFrame.rename"""
        return {physical: logical for logical, physical in cls.COLUMNS.items()}

    @classmethod
    def setup_logging(cls, level: str = None) -> None:
        """Configure root logging once for scripts and the dashboard"""
        logging.basicConfig(
            level=getattr(logging, (level or cls.LOG_LEVEL).upper(), logging.INFO),
            format=cls.LOG_FORMAT,
        )
