from __future__ import annotations

import copy

import pytest

from financials.editing import update_period_field
from financials.models import InputData
from financials.schema import NUMERIC, TEXT, DEFAULT_SCHEMA, FieldSchema


def _single_branch() -> InputData:
    return InputData.from_dict(
        {
            "branches": [{"id": "b1", "name": "North"}],
            "branchData": [{"branchId": "b1", "periods": [{"periodId": "p1", "revenue": 100}]}],
            "consolidatedData": {"periods": [{"periodId": "p1", "revenue": 100}]},
            "selectedPeriodType": "monthly",
            "numberOfPeriods": 2,
        }
    )


def test_branch_edit_leaves_consolidated_alone():
    data = _single_branch()
    consolidated = copy.deepcopy(data.consolidated_data)
    update_period_field(data, "b1", "p1", "revenue", 150)
    assert data.branch_data[0].periods[0].values["revenue"] == 150
    assert data.consolidated_data == consolidated


def test_consolidated_edit_leaves_branches_alone(input_data):
    branches = copy.deepcopy(input_data.branch_data)
    update_period_field(input_data, "consolidated", "2025-04", "revenue", 1.5)
    assert input_data.consolidated_data.periods[1].values["revenue"] == 1.5
    assert input_data.branch_data == branches


def test_same_edit_twice_matches_once(input_data):
    once = copy.deepcopy(input_data)
    update_period_field(once, "branch-2", "2025-05", "notes", "checked")
    twice = copy.deepcopy(input_data)
    update_period_field(twice, "branch-2", "2025-05", "notes", "checked")
    update_period_field(twice, "branch-2", "2025-05", "notes", "checked")
    assert once == twice


@pytest.mark.parametrize(
    "target, period_id",
    [("branch-X", "2025-03"), ("branch-1", "1999-01"), ("consolidated", "1999-01")],
)
def test_missing_targets_leave_data_unchanged(input_data, target, period_id):
    before = copy.deepcopy(input_data)
    update_period_field(input_data, target, period_id, "revenue", 1)
    assert input_data == before


def test_values_are_not_coerced(input_data):
    update_period_field(input_data, "branch-1", "2025-03", "revenue", "pending")
    update_period_field(input_data, "branch-1", "2025-03", "newField", 7)
    values = input_data.branch_data[0].periods[0].values
    assert values["revenue"] == "pending"
    assert values["newField"] == 7


def test_order_is_preserved(input_data):
    ids = [p.period_id for p in input_data.consolidated_data.periods]
    update_period_field(input_data, "consolidated", ids[2], "revenue", 0)
    assert [p.period_id for p in input_data.consolidated_data.periods] == ids


def test_label_is_editable_but_period_id_is_not(input_data):
    update_period_field(input_data, "consolidated", "2025-03", "label", "March")
    update_period_field(input_data, "consolidated", "2025-03", "periodId", "x")
    first = input_data.consolidated_data.periods[0]
    assert first.label == "March"
    assert first.period_id == "2025-03"


def test_schema_drops_unknown_fields_and_wrong_kinds(input_data):
    before = copy.deepcopy(input_data)
    update_period_field(input_data, "branch-1", "2025-03", "bogus", 1, schema=DEFAULT_SCHEMA)
    update_period_field(input_data, "branch-1", "2025-03", "revenue", "lots", schema=DEFAULT_SCHEMA)
    update_period_field(input_data, "branch-1", "2025-03", "revenue", True, schema=DEFAULT_SCHEMA)
    update_period_field(input_data, "branch-1", "2025-03", "notes", 5, schema=DEFAULT_SCHEMA)
    assert input_data == before

    update_period_field(input_data, "branch-1", "2025-03", "revenue", 99.5, schema=DEFAULT_SCHEMA)
    update_period_field(input_data, "branch-1", "2025-03", "notes", "audited", schema=DEFAULT_SCHEMA)
    values = input_data.branch_data[0].periods[0].values
    assert values["revenue"] == 99.5
    assert values["notes"] == "audited"


def test_schema_period_type_overrides(input_data):
    schema = FieldSchema(fields={"revenue": NUMERIC}, by_period_type={"monthly": {"memo": TEXT}})
    update_period_field(input_data, "consolidated", "2025-03", "memo", "close", schema=schema)
    assert input_data.consolidated_data.periods[0].values["memo"] == "close"

    input_data.selected_period_type = "daily"
    update_period_field(input_data, "consolidated", "2025-03", "memo", "reopen", schema=schema)
    assert input_data.consolidated_data.periods[0].values["memo"] == "close"


def test_schema_rejects_unknown_kind():
    with pytest.raises(ValueError):
        FieldSchema(fields={"revenue": "money"})
