from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from financials.models import (
    MAX_PERIODS,
    MIN_PERIODS,
    PERIOD_TYPES,
    InputData,
    Period,
)
from financials.schema import NUMERIC, value_kind


logger = logging.getLogger(__name__)

PERIOD_FREQ = {
    "daily": "D",
    "weekly": "W",
    "monthly": "M",
    "quarterly": "Q",
    "yearly": "Y",
}


def is_valid_period_type(value: object) -> bool:
    return isinstance(value, str) and value in PERIOD_TYPES


def is_valid_number_of_periods(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        return False
    return MIN_PERIODS <= int(value) <= MAX_PERIODS


# ---------------- Reconfiguration ----------------
def set_period_type(input_data: InputData, new_type: object) -> InputData:
    """Change the stored period type; period rows are left for the data source to rebuild."""
    if not is_valid_period_type(new_type):
        logger.debug("Rejected period type %r", new_type)
        return input_data
    input_data.selected_period_type = str(new_type)
    return input_data


def set_number_of_periods(input_data: InputData, n: object) -> InputData:
    # Out-of-range requests keep the previous value; arrays are not resized here.
    if not is_valid_number_of_periods(n):
        logger.debug("Rejected number of periods %r", n)
        return input_data
    input_data.number_of_periods = int(n)
    return input_data


# ---------------- Period labels ----------------
def _format_label(period: pd.Period, period_type: str) -> str:
    if period_type == "daily":
        return period.strftime("%b %d, %Y")
    if period_type == "weekly":
        return f"Week of {period.start_time:%b %d, %Y}"
    if period_type == "monthly":
        return period.strftime("%b %Y")
    if period_type == "quarterly":
        return f"Q{period.quarter} {period.year}"
    return str(period.year)


def period_labels(period_type: str, n: int, end: Optional[object] = None) -> List[Dict[str, str]]:
    """Return ``n`` chronological ``{"periodId", "label"}`` pairs ending at ``end`` (default today)."""
    if not is_valid_period_type(period_type):
        raise ValueError(f"Unknown period type: {period_type!r}")
    freq = PERIOD_FREQ[period_type]
    end_ts = pd.Timestamp(end) if end is not None else pd.Timestamp.today().normalize()
    periods = pd.period_range(end=end_ts.to_period(freq), periods=int(n), freq=freq)
    return [{"periodId": str(p), "label": _format_label(p, period_type)} for p in periods]


# ---------------- Roll-up views ----------------
def numeric_fields(periods: Iterable[Period]) -> List[str]:
    """Field names whose present values are all numeric, in first-seen order."""
    seen: Dict[str, bool] = {}
    for period in periods:
        for name, value in period.values.items():
            is_numeric = value_kind(value) == NUMERIC
            seen[name] = seen.get(name, True) and is_numeric
    return [name for name, ok in seen.items() if ok]


def series_frame(periods: List[Period]) -> pd.DataFrame:
    if not periods:
        return pd.DataFrame(columns=["position", "periodId", "label"])
    records = [{"position": i, **p.to_dict()} for i, p in enumerate(periods)]
    return pd.DataFrame.from_records(records)


def rollup_branches(input_data: InputData) -> pd.DataFrame:
    """Sum numeric fields across branch series by period position.

    This is a read-only view: the consolidated series is independent data and
    is never overwritten from it.
    """
    branch_periods = [p for entry in input_data.branch_data for p in entry.periods]
    fields = numeric_fields(branch_periods)
    frames = [series_frame(entry.periods).assign(branchId=entry.branch_id) for entry in input_data.branch_data if entry.periods]
    if not frames:
        return pd.DataFrame(columns=["position", "periodId", "label", "branchCount", *fields])

    long_df = pd.concat(frames, ignore_index=True)
    for col in fields:
        long_df[col] = pd.to_numeric(long_df[col], errors="coerce")
    totals = long_df.groupby("position")[fields].sum(min_count=1).reset_index() if fields else long_df[["position"]].drop_duplicates().sort_values("position").reset_index(drop=True)
    totals["branchCount"] = long_df.groupby("position")["branchId"].nunique().values

    # Labels follow the consolidated series where it has a row at that position.
    keys = long_df.drop_duplicates("position")[["position", "periodId", "label"]]
    consolidated = series_frame(input_data.consolidated_data.periods)
    if not consolidated.empty:
        keys = pd.concat([consolidated[["position", "periodId", "label"]], keys], ignore_index=True).drop_duplicates("position")
    out = keys.merge(totals, on="position", how="right").sort_values("position").reset_index(drop=True)
    return out[["position", "periodId", "label", "branchCount", *fields]]


def consolidation_variance(input_data: InputData) -> pd.DataFrame:
    """Compare the consolidated series against the branch roll-up, one row per period and field."""
    columns = ["position", "periodId", "label", "field", "consolidated", "rollup", "variance"]
    consolidated = series_frame(input_data.consolidated_data.periods)
    rollup = rollup_branches(input_data)
    fields = [f for f in numeric_fields(input_data.consolidated_data.periods) if f in rollup.columns]
    if consolidated.empty or rollup.empty or not fields:
        return pd.DataFrame(columns=columns)

    left = consolidated.melt(id_vars=["position", "periodId", "label"], value_vars=fields, var_name="field", value_name="consolidated")
    right = rollup.melt(id_vars=["position"], value_vars=fields, var_name="field", value_name="rollup")
    merged = left.merge(right, on=["position", "field"], how="left")
    merged["consolidated"] = pd.to_numeric(merged["consolidated"], errors="coerce")
    merged["rollup"] = pd.to_numeric(merged["rollup"], errors="coerce")
    merged["variance"] = merged["consolidated"] - merged["rollup"]
    return merged.sort_values(["position", "field"]).reset_index(drop=True)[columns]
