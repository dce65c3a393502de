"""
Tests for the per-studio current-month breakdown
"""

import pandas as pd
import pytest

from churn_analysis_service import compute_monthly_series
from models import MembershipRecord, PerformanceTier, StudioChurnMetric
from studio_analysis_service import StudioAnalysisService, compute_studio_breakdown, performance_tier


NOW = pd.Timestamp("2024-01-20")


def make_record(uid, order, end, status="Active", location="Bandra"):
    return MembershipRecord(
        unique_id=uid, member_id=f"M-{uid}",
        order_date=order, start_date=order, end_date=end,
        status=status, sessions_left=3, location=location,
    )


def create_test_data():
    return [
        make_record("1", "2023-11-01", "2024-01-12", status="Expired", location="Bandra"),
        make_record("2", "2023-12-01", "2024-04-01", location="Andheri"),
        make_record("3", "2023-10-01", "2024-05-01", location="Bandra"),
        make_record("4", "2024-01-05", "2024-03-05", location="Powai"),
        make_record("5", "2023-09-01", "2024-02-01", location=""),
    ]


def test_locations_in_first_seen_order():
    assert StudioAnalysisService.get_locations(create_test_data()) == ["Bandra", "Andheri", "Powai"]


def test_breakdown_counts_and_tiers():
    breakdown = compute_studio_breakdown(create_test_data(), NOW)

    assert [s.location for s in breakdown] == ["Bandra", "Andheri", "Powai"]
    bandra, andheri, powai = breakdown

    assert (bandra.starting_members, bandra.expired_members, bandra.churn_rate) == (2, 1, 50.0)
    assert bandra.performance_tier is PerformanceTier.NEEDS_ATTENTION
    assert (andheri.starting_members, andheri.expired_members, andheri.churn_rate) == (1, 0, 0.0)
    assert andheri.performance_tier is PerformanceTier.EXCELLENT
    assert all(s.month_label == "January 2024" for s in breakdown)


def test_location_without_current_month_activity_gets_zero_row():
    breakdown = compute_studio_breakdown(create_test_data(), NOW)
    powai = breakdown[-1]

    assert powai.location == "Powai"
    assert (powai.starting_members, powai.expired_members, powai.churn_rate) == (0, 0, 0.0)


def test_location_with_only_past_records_is_kept():
    records = create_test_data() + [make_record("6", "2022-01-01", "2022-06-01", status="Expired", location="Juhu")]

    breakdown = compute_studio_breakdown(records, NOW)

    assert breakdown[-1].location == "Juhu"
    assert breakdown[-1].starting_members == 0


def test_studio_totals_match_current_month_series():
    records = [r for r in create_test_data() if r.location]

    breakdown = compute_studio_breakdown(records, NOW)
    current = compute_monthly_series(records, NOW, window_size=1)[0]

    assert sum(s.starting_members for s in breakdown) == current.starting_members
    assert sum(s.expired_members for s in breakdown) == current.expired_members


def test_empty_records_give_empty_breakdown():
    assert compute_studio_breakdown([], NOW) == []


@pytest.mark.parametrize("churn_rate, expected", [
    (0.0, "Excellent"),
    (5.0, "Excellent"),
    (5.01, "Good"),
    (10.0, "Good"),
    (10.01, "Needs Attention"),
    (100.0, "Needs Attention"),
])
def test_performance_tier_boundaries(churn_rate, expected):
    assert performance_tier(churn_rate) == expected
    metric = StudioChurnMetric("Bandra", "January 2024", 100, 0, churn_rate)
    assert metric.performance_tier.value == expected
    assert metric.to_dict()['performance_tier'] == expected


def test_build_summary_table():
    service = StudioAnalysisService()
    summary_df = service.build_summary(service.compute_studio_breakdown(create_test_data(), NOW))

    assert summary_df['Location'].tolist() == ["Bandra", "Andheri", "Powai"]
    assert summary_df['Performance'].tolist() == ["Needs Attention", "Excellent", "Excellent"]
