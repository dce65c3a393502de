import pandas as pd

from date_window import MonthWindow
from models import MembershipRecord, MembershipStatus, RecordClassification


class RecordClassifier:
    """
    Decides which monthly cohorts a membership record belongs to

    For a month [month_start, month_end) a record is:
    - starting: ordered before the month and not yet ended at month start
    - new: ordered inside the month
    - expired_in_month: ended inside the month AND stored status is Expired
    - ending: ordered before month end and still running at month end

    The stored status gates expiry: an Active record whose end date falls in
    the month is not churn until something flips its status.
    """

    COHORTS = ["starting", "new", "expired_in_month", "ending"]

    @staticmethod
    def is_starting(record: MembershipRecord, month: MonthWindow) -> bool:
        return record.order_date < month.month_start and record.end_date >= month.month_start

    @staticmethod
    def is_new(record: MembershipRecord, month: MonthWindow) -> bool:
        return month.contains(record.order_date)

    @staticmethod
    def is_expired_in_month(record: MembershipRecord, month: MonthWindow) -> bool:
        return month.contains(record.end_date) and record.status is MembershipStatus.EXPIRED

    @staticmethod
    def is_ending(record: MembershipRecord, month: MonthWindow) -> bool:
        return record.order_date < month.month_end and record.end_date >= month.month_end

    def classify(self, record: MembershipRecord, month: MonthWindow) -> RecordClassification:
        return RecordClassification(
            starting=self.is_starting(record, month),
            new=self.is_new(record, month),
            expired_in_month=self.is_expired_in_month(record, month),
            ending=self.is_ending(record, month),
        )

    def classify_frame(self, df: pd.DataFrame, month: MonthWindow) -> pd.DataFrame:
        """
        Vectorised classify over a records frame

        Args:
            df: Frame with 'order_date', 'end_date' (datetime64) and 'status' columns
            month: Month boundary to classify against

        Returns:
            Boolean frame with one column per cohort, aligned to df.index
        """
        order_date = df['order_date']
        end_date = df['end_date']
        is_expired = df['status'] == MembershipStatus.EXPIRED.value

        return pd.DataFrame({
            'starting': (order_date < month.month_start) & (end_date >= month.month_start),
            'new': (order_date >= month.month_start) & (order_date < month.month_end),
            'expired_in_month': (end_date >= month.month_start) & (end_date < month.month_end) & is_expired,
            'ending': (order_date < month.month_end) & (end_date >= month.month_end),
        }, index=df.index, columns=self.COHORTS)
