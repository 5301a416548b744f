from __future__ import annotations

import logging
from typing import List, Optional

from financials.models import CONSOLIDATED, FieldValue, InputData, Period, find_branch_data, find_period
from financials.schema import FieldSchema


logger = logging.getLogger(__name__)


def _target_periods(input_data: InputData, target: str) -> Optional[List[Period]]:
    if target == CONSOLIDATED:
        return input_data.consolidated_data.periods
    entry = find_branch_data(input_data.branch_data, target)
    if entry is None:
        return None
    return entry.periods


def update_period_field(
    input_data: InputData,
    target: str,
    period_id: str,
    field_name: str,
    value: FieldValue,
    *,
    schema: Optional[FieldSchema] = None,
) -> InputData:
    """Set one field of one period in the consolidated series or a branch series.

    Missing branches or periods drop the edit silently. Without a schema any
    field name and value are accepted as-is; with one, edits it does not
    accept are dropped. Other series are never touched.
    """
    periods = _target_periods(input_data, target)
    if periods is None:
        logger.debug("Dropped edit for unknown target %r", target)
        return input_data
    period = find_period(periods, period_id)
    if period is None:
        logger.debug("Dropped edit for unknown period %r in %r", period_id, target)
        return input_data
    if field_name == "periodId":
        logger.debug("Dropped edit of periodId %r in %r", period_id, target)
        return input_data
    if schema is not None and not schema.accepts(field_name, value, input_data.selected_period_type):
        logger.debug("Schema rejected %r=%r for %r/%r", field_name, value, target, period_id)
        return input_data

    if field_name == "label":
        period.label = value if isinstance(value, str) else str(value)
    else:
        period.values[field_name] = value
    return input_data
