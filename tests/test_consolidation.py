from __future__ import annotations

import copy

import pytest

from financials.consolidation import (
    consolidation_variance,
    numeric_fields,
    period_labels,
    rollup_branches,
    set_number_of_periods,
    set_period_type,
)
from financials.editing import update_period_field
from financials.models import InputData, Period


@pytest.mark.parametrize("n", [0, 1, 7, 100, -3, 2.5, "4", True, None])
def test_number_of_periods_rejects_out_of_range(input_data, n):
    set_number_of_periods(input_data, n)
    assert input_data.number_of_periods == 4


@pytest.mark.parametrize("n", [2, 3, 4, 5, 6])
def test_number_of_periods_accepts_range(input_data, n):
    set_number_of_periods(input_data, n)
    assert input_data.number_of_periods == n


def test_number_of_periods_scenario(input_data):
    set_number_of_periods(input_data, 6)
    assert input_data.number_of_periods == 6
    set_number_of_periods(input_data, 1)
    assert input_data.number_of_periods == 6


def test_number_of_periods_does_not_resize_series(input_data):
    set_number_of_periods(input_data, 6)
    assert len(input_data.consolidated_data.periods) == 4
    assert all(len(entry.periods) == 4 for entry in input_data.branch_data)


def test_period_type_changes_only_the_type(input_data):
    before = copy.deepcopy(input_data)
    set_period_type(input_data, "quarterly")
    assert input_data.selected_period_type == "quarterly"
    input_data.selected_period_type = before.selected_period_type
    assert input_data == before


@pytest.mark.parametrize("value", ["Monthly", "hourly", "", None, 3])
def test_period_type_rejects_unknown(input_data, value):
    set_period_type(input_data, value)
    assert input_data.selected_period_type == "monthly"


def test_period_labels_are_chronological():
    assert period_labels("monthly", 3, end="2025-06-15") == [
        {"periodId": "2025-04", "label": "Apr 2025"},
        {"periodId": "2025-05", "label": "May 2025"},
        {"periodId": "2025-06", "label": "Jun 2025"},
    ]
    assert [p["label"] for p in period_labels("quarterly", 2, end="2025-06-15")] == ["Q1 2025", "Q2 2025"]
    assert [p["periodId"] for p in period_labels("yearly", 3, end="2025-06-15")] == ["2023", "2024", "2025"]
    assert period_labels("daily", 2, end="2025-06-15")[-1] == {"periodId": "2025-06-15", "label": "Jun 15, 2025"}
    weekly = period_labels("weekly", 2, end="2025-06-15")
    assert weekly[-1]["label"] == "Week of Jun 09, 2025"
    assert len({p["periodId"] for p in weekly}) == 2


def test_period_labels_reject_unknown_type():
    with pytest.raises(ValueError):
        period_labels("hourly", 2)


def test_numeric_fields_skip_text_and_mixed():
    periods = [
        Period("p1", values={"revenue": 1, "notes": "a", "mixed": 1}),
        Period("p2", values={"revenue": 2.5, "mixed": "n/a"}),
    ]
    assert numeric_fields(periods) == ["revenue"]


def test_rollup_sums_branches_by_position(input_data):
    rollup = rollup_branches(input_data)
    assert list(rollup["periodId"]) == ["2025-03", "2025-04", "2025-05", "2025-06"]
    assert list(rollup["branchCount"]) == [2, 2, 2, 2]
    assert rollup.loc[0, "revenue"] == pytest.approx(60000 + 75000)
    assert "notes" not in rollup.columns


def test_rollup_is_a_view_and_does_not_touch_consolidated(input_data):
    before = copy.deepcopy(input_data.consolidated_data)
    update_period_field(input_data, "branch-1", "2025-03", "revenue", 1)
    rollup_branches(input_data)
    assert input_data.consolidated_data == before


def test_rollup_without_branch_series():
    assert rollup_branches(InputData()).empty


def test_variance_tracks_independent_consolidated_edits(input_data):
    variance = consolidation_variance(input_data)
    assert (variance["variance"].abs() < 1e-6).all()

    update_period_field(input_data, "consolidated", "2025-03", "revenue", 140000)
    variance = consolidation_variance(input_data)
    row = variance[(variance["periodId"] == "2025-03") & (variance["field"] == "revenue")].iloc[0]
    assert row["rollup"] == pytest.approx(135000)
    assert row["variance"] == pytest.approx(5000)
