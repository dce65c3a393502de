import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from churn_analysis_service import ChurnAnalysisService
from config import Config
from data_processor import MembershipDataProcessor, records_to_frame
from date_window import to_timestamp
from filters import Filter, FilterChain
from models import ChurnAnalysisResult, MembershipOverview, MembershipRecord, StudioChurnMetric
from studio_analysis_service import StudioAnalysisService

logger = logging.getLogger(__name__)


class ChurnAnalysisManager:
    """
    Main orchestrator class for membership churn analysis

    This class coordinates all the components of the churn analysis system:
    - Data loading
    - Segment filtering
    - Monthly churn calculations
    - Per-studio churn calculations
    - Export

    The reference instant `now` is fixed at construction so repeated
    computations over the same records give identical results.
    """

    def __init__(self, now: Any,
                 filters: Optional[List[Filter]] = None,
                 window_size: Optional[int] = None):

        self.config = Config()
        self.now = to_timestamp(now, "now")

        # Initialize services
        self.data_processor = MembershipDataProcessor()
        self.churn_analysis_service = ChurnAnalysisService(window_size=window_size)
        self.studio_analysis_service = StudioAnalysisService()
        self._filter_chain = FilterChain(filters)

        # Data storage
        self._all_records: Optional[List[MembershipRecord]] = None
        self._records: Optional[List[MembershipRecord]] = None

        # Analysis results
        self._churn_result: Optional[ChurnAnalysisResult] = None
        self._churn_summary: Optional[pd.DataFrame] = None
        self._studio_breakdown: Optional[List[StudioChurnMetric]] = None
        self._expiring_members: Optional[Dict[str, List[MembershipRecord]]] = None
        self._overview: Optional[MembershipOverview] = None

    def load_data(self, memberships_file: str = None) -> 'ChurnAnalysisManager':
        """
        Load membership records from a CSV export and apply filters

        Args:
            memberships_file: Path to the memberships CSV file

        Returns:
            Self for method chaining
        """
        file_path = memberships_file or self.config.MEMBERSHIPS_FILE
        return self.set_records(self.data_processor.load_memberships(file_path))

    def set_records(self, records: List[MembershipRecord]) -> 'ChurnAnalysisManager':
        """
        Use an already materialised list of records

        Returns:
            Self for method chaining
        """
        self._all_records = list(records)
        self._records = self._filter_chain.apply(self._all_records)
        return self

    def compute_churn_analysis(self) -> 'ChurnAnalysisManager':
        """
        Compute monthly churn metrics for the filtered records

        Returns:
            Self for method chaining
        """
        records = self.get_records()
        self._churn_result = self.churn_analysis_service.compute_churn_result(records, self.now)
        self._churn_summary = self.churn_analysis_service.build_summary(self._churn_result.monthly_metrics)
        self._expiring_members = self.churn_analysis_service.get_expiring_in_month(records, self.now)
        self._overview = self.churn_analysis_service.compute_overview(records, self.now)
        return self

    def compute_studio_analysis(self) -> 'ChurnAnalysisManager':
        """
        Compute the current-month breakdown per studio

        Returns:
            Self for method chaining
        """
        self._studio_breakdown = self.studio_analysis_service.compute_studio_breakdown(
            self.get_records(), self.now)
        return self

    def get_records(self) -> List[MembershipRecord]:
        """Get the filtered records"""
        if self._records is None:
            raise ValueError("Must load data first. Call load_data() or set_records() before this method.")
        return self._records

    def get_churn_result(self) -> ChurnAnalysisResult:
        """Get the monthly series with current/previous month lookups"""
        if self._churn_result is None:
            raise ValueError("Must compute churn analysis first. Call compute_churn_analysis() before this method.")
        return self._churn_result

    def get_churn_summary(self) -> pd.DataFrame:
        """Get the computed churn summary"""
        if self._churn_summary is None:
            raise ValueError("Must compute churn analysis first. Call compute_churn_analysis() before this method.")
        return self._churn_summary

    def get_expiring_members(self) -> Dict[str, List[MembershipRecord]]:
        """Get this month's expired and still-active expiring records"""
        if self._expiring_members is None:
            raise ValueError("Must compute churn analysis first. Call compute_churn_analysis() before this method.")
        return self._expiring_members

    def get_overview(self) -> MembershipOverview:
        """Get headline membership counts"""
        if self._overview is None:
            raise ValueError("Must compute churn analysis first. Call compute_churn_analysis() before this method.")
        return self._overview

    def get_studio_breakdown(self) -> List[StudioChurnMetric]:
        """Get the per-studio churn metrics"""
        if self._studio_breakdown is None:
            raise ValueError("Must compute studio analysis first. Call compute_studio_analysis() before this method.")
        return self._studio_breakdown

    def get_studio_summary(self) -> pd.DataFrame:
        """Get the per-studio churn metrics as a table"""
        return self.studio_analysis_service.build_summary(self.get_studio_breakdown())

    def get_filter_statistics(self) -> Tuple[Dict, Dict]:
        """
        Get filter statistics showing how many records are filtered vs included

        Returns:
            Tuple of (filter_stats, summary_stats)
        """
        return (
            self._filter_chain.get_filter_stats(),
            self._filter_chain.get_summary_stats()
        )

    def get_analysis_summary(self) -> Dict:
        """Get comprehensive summary of the analysis"""
        summary = {
            'data_loaded': self._records is not None,
            'churn_analysis_computed': self._churn_result is not None,
            'studio_analysis_computed': self._studio_breakdown is not None,
            'total_records': len(self._all_records) if self._all_records is not None else 0,
            'filtered_records': len(self._records) if self._records is not None else 0,
            'active_filters': self._filter_chain.get_active_filters(),
            'reference_date': self.now,
            'window_size': self.churn_analysis_service.window_size,
        }

        if self._churn_result is not None:
            current = self._churn_result.current_month
            summary.update({
                'analysis_period': {
                    'start': self._churn_result.monthly_metrics[0].month_label,
                    'end': current.month_label,
                },
                'current_churn_rate': current.churn_rate,
                'churn_change': self._churn_result.churn_change,
                'total_new_members': int(self._churn_summary['New_Members'].sum()),
                'total_expired_members': int(self._churn_summary['Expired_Members'].sum()),
                'average_churn_rate': round(float(self._churn_summary['Churn_Rate'].mean()), 2),
            })

        if self._studio_breakdown is not None:
            summary['studios'] = len(self._studio_breakdown)

        return summary

    def export_data(self, base_filename: str = "churn_analysis", output_dir: str = None) -> Dict[str, str]:
        """
        Export analysis results to CSV and JSON files

        Args:
            base_filename: Base name for exported files
            output_dir: Directory for the files, defaults to Config.EXPORT_DIR

        Returns:
            Dictionary mapping data type to file path
        """
        records = self.get_records()
        output_dir = output_dir or self.config.EXPORT_DIR
        os.makedirs(output_dir, exist_ok=True)

        exported_files = {}

        def _write(key: str, df: pd.DataFrame) -> None:
            csv_path = os.path.join(output_dir, f"{base_filename}_{key}.csv")
            json_path = os.path.join(output_dir, f"{base_filename}_{key}.json")
            df.to_csv(csv_path, index=False)
            df.to_json(json_path, orient="records", date_format="iso")
            exported_files[key] = csv_path
            exported_files[f"{key}_json"] = json_path

        # Export filtered memberships
        _write('memberships', records_to_frame(records))

        # Export churn summary
        if self._churn_summary is not None:
            _write('churn_summary', self._churn_summary)

        # Export studio breakdown
        if self._studio_breakdown is not None:
            _write('studio_breakdown', self.get_studio_summary())

        logger.info("Exported %d files to %s", len(exported_files), output_dir)
        return exported_files
