"""
Tests for the churn analysis orchestrator
"""

import json
import os

import pandas as pd
import pytest

from analysis_manager import ChurnAnalysisManager
from config import Config
from filters import LocationFilter, StatusFilter
from models import MembershipRecord


NOW = pd.Timestamp("2024-01-20")


def make_record(uid, order, end, status="Active", location="Bandra"):
    return MembershipRecord(
        unique_id=uid, member_id=f"M-{uid}",
        order_date=order, start_date=order, end_date=end,
        status=status, sessions_left=2, location=location,
    )


def create_test_data():
    return [
        make_record("a", "2023-10-01", "2023-12-10", status="Expired"),
        make_record("b", "2023-11-01", "2024-03-01"),
        make_record("c", "2023-11-15", "2024-01-10", status="Expired", location="Andheri"),
        make_record("d", "2023-12-05", "2024-06-01", location="Andheri"),
        make_record("e", "2023-11-20", "2024-01-25", status="Expired"),
    ]


def test_full_analysis_flow():
    analyzer = ChurnAnalysisManager(now=NOW, window_size=2)
    analyzer.set_records(create_test_data()).compute_churn_analysis().compute_studio_analysis()

    result = analyzer.get_churn_result()
    assert [m.churn_rate for m in result.monthly_metrics] == [25.0, 50.0]
    assert result.churn_change == 25.0

    summary_df = analyzer.get_churn_summary()
    assert summary_df['Month'].tolist() == ["December 2023", "January 2024"]

    studios = analyzer.get_studio_breakdown()
    assert [s.location for s in studios] == ["Bandra", "Andheri"]
    assert [s.churn_rate for s in studios] == [50.0, 50.0]

    assert [r.unique_id for r in analyzer.get_expiring_members()['expired']] == ["c", "e"]
    assert analyzer.get_overview().total_members == 5


def test_filters_scope_the_analysis():
    analyzer = ChurnAnalysisManager(now=NOW, filters=[LocationFilter(["Andheri"])], window_size=1)
    analyzer.set_records(create_test_data()).compute_churn_analysis()

    january = analyzer.get_churn_result().current_month
    assert (january.starting_members, january.expired_members, january.churn_rate) == (2, 1, 50.0)

    filter_stats, summary_stats = analyzer.get_filter_statistics()
    assert summary_stats == {'total_filters': 1, 'total_excluded': 3, 'total_included': 2, 'total_original': 5}
    assert list(filter_stats) == ["Only include locations: Andheri"]


def test_getters_before_compute_raise():
    analyzer = ChurnAnalysisManager(now=NOW)

    with pytest.raises(ValueError):
        analyzer.get_records()
    with pytest.raises(ValueError):
        analyzer.compute_churn_analysis()

    analyzer.set_records(create_test_data())
    for getter in (analyzer.get_churn_result, analyzer.get_churn_summary, analyzer.get_overview,
                   analyzer.get_expiring_members, analyzer.get_studio_breakdown):
        with pytest.raises(ValueError):
            getter()


def test_analysis_summary():
    analyzer = ChurnAnalysisManager(now=NOW, filters=[StatusFilter(["Active", "Expired"])], window_size=2)
    analyzer.set_records(create_test_data()).compute_churn_analysis().compute_studio_analysis()

    summary = analyzer.get_analysis_summary()

    assert summary['data_loaded'] is True
    assert summary['total_records'] == 5
    assert summary['filtered_records'] == 5
    assert summary['window_size'] == 2
    assert summary['analysis_period'] == {'start': "December 2023", 'end': "January 2024"}
    assert summary['current_churn_rate'] == 50.0
    assert summary['churn_change'] == 25.0
    assert summary['total_expired_members'] == 3
    assert summary['average_churn_rate'] == 37.5
    assert summary['studios'] == 2


def test_load_data_from_csv(tmp_path):
    rows = [{
        Config.get_column('unique_id'): r.unique_id,
        Config.get_column('member_id'): r.member_id,
        Config.get_column('order_date'): r.order_date.date().isoformat(),
        Config.get_column('start_date'): r.start_date.date().isoformat(),
        Config.get_column('end_date'): r.end_date.date().isoformat(),
        Config.get_column('status'): r.status.value,
        Config.get_column('sessions_left'): r.sessions_left,
        Config.get_column('location'): r.location,
    } for r in create_test_data()]
    path = tmp_path / "memberships.csv"
    pd.DataFrame(rows).to_csv(path, index=False)

    analyzer = ChurnAnalysisManager(now=NOW, window_size=2).load_data(str(path))
    analyzer.compute_churn_analysis()

    assert [m.churn_rate for m in analyzer.get_churn_result().monthly_metrics] == [25.0, 50.0]


def test_export_data(tmp_path):
    analyzer = ChurnAnalysisManager(now=NOW, window_size=2)
    analyzer.set_records(create_test_data()).compute_churn_analysis().compute_studio_analysis()

    exported = analyzer.export_data("report", output_dir=str(tmp_path))

    assert set(exported) == {
        'memberships', 'memberships_json',
        'churn_summary', 'churn_summary_json',
        'studio_breakdown', 'studio_breakdown_json',
    }
    assert all(os.path.exists(path) for path in exported.values())

    churn_csv = pd.read_csv(exported['churn_summary'])
    assert churn_csv['Churn_Rate'].tolist() == [25.0, 50.0]

    with open(exported['studio_breakdown_json']) as f:
        studios = json.load(f)
    assert studios[0]['Location'] == "Bandra"
    assert studios[0]['Performance'] == "Needs Attention"

    with open(exported['memberships_json']) as f:
        memberships = json.load(f)
    assert memberships[0]['order_date'].startswith("2023-10-01T00:00:00")
    assert {"comments", "notes", "tags"} <= set(memberships[0])
