import logging
from typing import Any, List, Optional, Sequence

import pandas as pd

from churn_analysis_service import calculate_churn_rate
from data_processor import records_to_frame
from date_window import current_month_window
from models import MembershipRecord, PerformanceTier, StudioChurnMetric
from record_classifier import RecordClassifier

logger = logging.getLogger(__name__)


class StudioAnalysisService:
    """Service for current-month churn broken down by studio location"""

    def __init__(self, classifier: Optional[RecordClassifier] = None):
        self.classifier = classifier or RecordClassifier()

    @staticmethod
    def get_locations(records: Sequence[MembershipRecord]) -> List[str]:
        """Distinct non-empty locations in first-seen order"""
        return list(dict.fromkeys(r.location for r in records if r.location))

    def compute_studio_breakdown(self,
                                 records: Sequence[MembershipRecord],
                                 now: Any) -> List[StudioChurnMetric]:
        """
        Current-month starting/expired/churn rate per location

        Every distinct location gets a row, all zeros when nothing in it
        started or expired this month.
        """
        month = current_month_window(now)
        df = records_to_frame(records)
        locations = self.get_locations(records)

        masks = self.classifier.classify_frame(df, month)
        counts = (
            masks[['starting', 'expired_in_month']]
            .groupby(df['location'], sort=False)
            .sum()
            .reindex(locations, fill_value=0)
        )

        breakdown = []
        for location, row in counts.iterrows():
            starting = int(row['starting'])
            expired = int(row['expired_in_month'])
            breakdown.append(StudioChurnMetric(
                location=location,
                month_label=month.label,
                starting_members=starting,
                expired_members=expired,
                churn_rate=calculate_churn_rate(expired, starting),
            ))

        logger.info("Computed %s studio breakdown for %d locations", month.label, len(breakdown))
        return breakdown

    @staticmethod
    def build_summary(breakdown: Sequence[StudioChurnMetric]) -> pd.DataFrame:
        """Tabular view of a studio breakdown for display and export"""
        return pd.DataFrame([metric.to_dict() for metric in breakdown], columns=[
            'location', 'month_label', 'starting_members', 'expired_members',
            'churn_rate', 'performance_tier',
        ]).rename(columns={
            'location': 'Location',
            'month_label': 'Month',
            'starting_members': 'Starting_Members',
            'expired_members': 'Expired_Members',
            'churn_rate': 'Churn_Rate',
            'performance_tier': 'Performance',
        })


def performance_tier(churn_rate: float) -> str:
    """Performance label for a churn rate: Excellent / Good / Needs Attention"""
    return PerformanceTier.from_churn_rate(churn_rate).value


def compute_studio_breakdown(records: Sequence[MembershipRecord], now: Any) -> List[StudioChurnMetric]:
    """Stateless entry point: current-month churn per distinct location"""
    return StudioAnalysisService().compute_studio_breakdown(records, now)
