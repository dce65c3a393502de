import logging
from collections import Counter
from typing import List, Optional, Sequence

import pandas as pd

from config import Config
from errors import PreconditionViolation
from models import MembershipRecord

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    'unique_id', 'member_id', 'first_name', 'last_name', 'email',
    'membership_name', 'order_date', 'start_date', 'end_date', 'status',
    'sessions_left', 'location', 'paid', 'comments', 'notes', 'tags',
]
DATE_COLUMNS = ['order_date', 'start_date', 'end_date']


def records_to_frame(records: Sequence[MembershipRecord]) -> pd.DataFrame:
    """
    Build the analysis frame for a list of records

    Row i of the frame is records[i]. Raises PreconditionViolation when a
    unique_id appears more than once, since every count relies on it.
    """
    duplicates = [uid for uid, n in Counter(r.unique_id for r in records).items() if n > 1]
    if duplicates:
        raise PreconditionViolation(f"Duplicate unique_id values: {sorted(duplicates)[:10]}")

    rows = [{
        'unique_id': r.unique_id,
        'member_id': r.member_id,
        'first_name': r.first_name,
        'last_name': r.last_name,
        'email': r.email,
        'membership_name': r.membership_name,
        'order_date': r.order_date,
        'start_date': r.start_date,
        'end_date': r.end_date,
        'status': r.status.value,
        'sessions_left': r.sessions_left,
        'location': r.location,
        'paid': r.paid,
        'comments': r.comments,
        'notes': r.notes,
        'tags': ', '.join(r.tags),
    } for r in records]

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    for col in DATE_COLUMNS:
        df[col] = pd.to_datetime(df[col])
    df['sessions_left'] = df['sessions_left'].astype(int)
    return df


class MembershipDataProcessor:
    """Handles loading and cleaning of the membership sheet export"""

    def __init__(self):
        self.config = Config()
        self._records: Optional[List[MembershipRecord]] = None

    def load_memberships(self, file_path: str) -> List[MembershipRecord]:
        """Load a membership CSV export into MembershipRecord values"""
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False).copy()

        # Validate required columns
        self._validate_columns(df)

        # Clean and standardize data
        df = self._clean_memberships_data(df)

        self._records = self.frame_to_records(df)
        logger.info("Loaded %d membership records from %s", len(self._records), file_path)
        return self._records

    def _validate_columns(self, df: pd.DataFrame) -> None:
        """Validate that required columns exist"""
        missing_columns = [col for col in self.config.get_required_columns() if col not in df.columns]
        if missing_columns:
            raise PreconditionViolation(f"Missing required columns: {missing_columns}")

    def _clean_memberships_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """Rename to logical fields and trim text"""
        df = df.rename(columns=self.config.get_column_renames())
        known = [col for col in self.config.COLUMNS if col in df.columns]
        df = df[known].copy()
        for col in known:
            df[col] = df[col].str.strip()
        df['status'] = df['status'].str.capitalize()
        return df

    @staticmethod
    def frame_to_records(df: pd.DataFrame) -> List[MembershipRecord]:
        """Turn a frame of logical columns into records, row order kept"""
        records = []
        for row in df.to_dict(orient='records'):
            tags = row.pop('tags', '') or ''
            if isinstance(tags, str):
                tags = [t.strip() for t in tags.split(',') if t.strip()]
            records.append(MembershipRecord(tags=list(tags), **row))
        return records

    def get_records(self) -> List[MembershipRecord]:
        """Get the loaded records"""
        if self._records is None:
            raise ValueError("Membership data not loaded. Call load_memberships() first.")
        return self._records
