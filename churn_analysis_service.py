import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from config import Config
from data_processor import records_to_frame
from date_window import build_month_window, current_month_window, to_timestamp
from models import (ChurnAnalysisResult, MembershipOverview, MembershipRecord,
                    MembershipStatus, MonthlyChurnMetric)
from record_classifier import RecordClassifier

logger = logging.getLogger(__name__)


def calculate_churn_rate(expired_members: int, starting_members: int) -> float:
    """Churn percentage rounded to 2 decimals, 0.0 when nobody was active"""
    if starting_members <= 0:
        return 0.0
    return round(expired_members / starting_members * 100, 2)


class ChurnAnalysisService:
    """Service for computing monthly membership churn metrics"""

    def __init__(self, window_size: Optional[int] = None, classifier: Optional[RecordClassifier] = None):
        self.config = Config()
        self.window_size = self.config.DEFAULT_WINDOW_MONTHS if window_size is None else window_size
        self.classifier = classifier or RecordClassifier()

    def compute_monthly_series(self,
                               records: Sequence[MembershipRecord],
                               now: Any) -> List[MonthlyChurnMetric]:
        """
        Compute the trailing monthly churn series

        Args:
            records: Membership records to analyse (not modified)
            now: Reference instant; the last entry is its calendar month

        Returns:
            List of MonthlyChurnMetric, oldest month first
        """
        months = build_month_window(now, self.window_size)
        df = records_to_frame(records)
        self._report_inconsistencies(df, to_timestamp(now, "now"))

        series = []
        for month in months:
            masks = self.classifier.classify_frame(df, month)
            starting, new, expired, ending = (int(n) for n in masks.to_numpy().sum(axis=0))
            series.append(MonthlyChurnMetric(
                month_label=month.label,
                month_start=month.month_start,
                starting_members=starting,
                new_members=new,
                expired_members=expired,
                ending_members=ending,
                churn_rate=calculate_churn_rate(expired, starting),
            ))

        logger.info("Computed churn series for %d months over %d records", len(series), len(df))
        return series

    def compute_churn_result(self,
                             records: Sequence[MembershipRecord],
                             now: Any) -> ChurnAnalysisResult:
        """Monthly series wrapped with current/previous month lookups"""
        return ChurnAnalysisResult(monthly_metrics=self.compute_monthly_series(records, now))

    @staticmethod
    def build_summary(series: Sequence[MonthlyChurnMetric]) -> pd.DataFrame:
        """Tabular view of a monthly series for display and export"""
        summary_df = pd.DataFrame([metric.to_dict() for metric in series], columns=[
            'month_label', 'month_start', 'starting_members', 'new_members',
            'expired_members', 'ending_members', 'churn_rate', 'churn_count',
        ])
        summary_df['month_start'] = pd.to_datetime(summary_df['month_start'])
        return summary_df.rename(columns={
            'month_label': 'Month',
            'month_start': 'Month_Start',
            'starting_members': 'Starting_Members',
            'new_members': 'New_Members',
            'expired_members': 'Expired_Members',
            'ending_members': 'Ending_Members',
            'churn_rate': 'Churn_Rate',
            'churn_count': 'Churn_Count',
        })

    def get_expiring_in_month(self,
                              records: Sequence[MembershipRecord],
                              now: Any) -> Dict[str, List[MembershipRecord]]:
        """
        Records whose end date falls in the current month

        Returns:
            Dict with 'expired' and 'active' lists, input order kept
        """
        month = current_month_window(now)
        in_month = [r for r in records if month.contains(r.end_date)]
        return {
            'expired': [r for r in in_month if r.status is MembershipStatus.EXPIRED],
            'active': [r for r in in_month if r.status is MembershipStatus.ACTIVE],
        }

    def compute_overview(self, records: Sequence[MembershipRecord], now: Any) -> MembershipOverview:
        """Headline membership counts for the current month"""
        month = current_month_window(now)
        return MembershipOverview(
            total_members=len(records),
            active_members=sum(r.status is MembershipStatus.ACTIVE for r in records),
            expired_members=sum(r.status is MembershipStatus.EXPIRED for r in records),
            members_with_sessions=sum(r.sessions_left > 0 for r in records),
            expiring_this_month=sum(month.contains(r.end_date) for r in records),
        )

    @staticmethod
    def _report_inconsistencies(df: pd.DataFrame, now: pd.Timestamp) -> None:
        """Log records the classifier takes at face value but look suspicious"""
        ends_before_order = df['end_date'] < df['order_date']
        lapsed_but_active = (df['status'] == MembershipStatus.ACTIVE.value) & (df['end_date'] < now)

        if ends_before_order.any():
            logger.warning("[churn] %d record(s) end before their order date: %s",
                           int(ends_before_order.sum()),
                           df.loc[ends_before_order, 'unique_id'].head(5).tolist())
        if lapsed_but_active.any():
            logger.warning("[churn] %d record(s) are Active with an end date before %s; "
                           "they are not counted as churn until their status changes",
                           int(lapsed_but_active.sum()), now.date())


def compute_monthly_series(records: Sequence[MembershipRecord],
                           now: Any,
                           window_size: int = Config.DEFAULT_WINDOW_MONTHS) -> List[MonthlyChurnMetric]:
    """Stateless entry point: trailing monthly churn series for `records`"""
    return ChurnAnalysisService(window_size=window_size).compute_monthly_series(records, now)
