from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class FiltersModel(BaseModel):
    period: Optional[str] = None
    category: Optional[str] = None


class SelectedBranchModel(BaseModel):
    branch_id: Optional[str] = None


class CellUpdateModel(BaseModel):
    target: str
    period_id: str
    field_name: str
    value: Union[int, float, str]


class PeriodTypeModel(BaseModel):
    period_type: str


class NumberOfPeriodsModel(BaseModel):
    # Passed through untouched; the store rejects anything but an int in range.
    number_of_periods: Any


class NewBranchModel(BaseModel):
    name: str
    periods: List[Dict[str, Any]] = Field(default_factory=list)
