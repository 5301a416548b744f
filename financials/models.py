from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union


FieldValue = Union[int, float, str]

PERIOD_TYPES = ("daily", "weekly", "monthly", "quarterly", "yearly")
MIN_PERIODS = 2
MAX_PERIODS = 6
CONSOLIDATED = "consolidated"

# Keys that identify a period rather than carry a financial value.
PERIOD_KEYS = ("periodId", "label")


@dataclass
class Period:
    period_id: str
    label: str = ""
    values: Dict[str, FieldValue] = field(default_factory=dict)

    def get(self, field_name: str, default: Optional[FieldValue] = None) -> Optional[FieldValue]:
        if field_name == "label":
            return self.label
        if field_name == "periodId":
            return self.period_id
        return self.values.get(field_name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"periodId": self.period_id, "label": self.label, **self.values}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Period":
        values = {k: v for k, v in raw.items() if k not in PERIOD_KEYS}
        return cls(period_id=str(raw["periodId"]), label=str(raw.get("label") or ""), values=values)


@dataclass
class Branch:
    id: str
    name: str
    periods: List[Period] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "periods": [p.to_dict() for p in self.periods]}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Branch":
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            periods=_periods_from(raw.get("periods")),
        )


@dataclass
class BranchData:
    branch_id: str
    periods: List[Period] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"branchId": self.branch_id, "periods": [p.to_dict() for p in self.periods]}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BranchData":
        return cls(branch_id=str(raw["branchId"]), periods=_periods_from(raw.get("periods")))


@dataclass
class ConsolidatedSeries:
    periods: List[Period] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"periods": [p.to_dict() for p in self.periods]}

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "ConsolidatedSeries":
        return cls(periods=_periods_from((raw or {}).get("periods")))


@dataclass
class InputData:
    branches: List[Branch] = field(default_factory=list)
    branch_data: List[BranchData] = field(default_factory=list)
    consolidated_data: ConsolidatedSeries = field(default_factory=ConsolidatedSeries)
    selected_period_type: str = "monthly"
    number_of_periods: int = 4

    def to_dict(self) -> Dict[str, Any]:
        return {
            "branches": [b.to_dict() for b in self.branches],
            "branchData": [bd.to_dict() for bd in self.branch_data],
            "consolidatedData": self.consolidated_data.to_dict(),
            "selectedPeriodType": self.selected_period_type,
            "numberOfPeriods": self.number_of_periods,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "InputData":
        return cls(
            branches=[Branch.from_dict(b) for b in raw.get("branches") or []],
            branch_data=[BranchData.from_dict(bd) for bd in raw.get("branchData") or []],
            consolidated_data=ConsolidatedSeries.from_dict(raw.get("consolidatedData")),
            selected_period_type=str(raw.get("selectedPeriodType") or "monthly"),
            number_of_periods=int(raw.get("numberOfPeriods") or 4),
        )


@dataclass
class FinancialData:
    """Payload returned by the data source; ``input_data`` is the editable part."""

    summary: Dict[str, Any] = field(default_factory=dict)
    recent_transactions: List[Dict[str, Any]] = field(default_factory=list)
    cash_flow: List[Dict[str, Any]] = field(default_factory=list)
    budget_vs_actual: List[Dict[str, Any]] = field(default_factory=list)
    input_data: Optional[InputData] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "recentTransactions": self.recent_transactions,
            "cashFlow": self.cash_flow,
            "budgetVsActual": self.budget_vs_actual,
            "inputData": self.input_data.to_dict() if self.input_data is not None else None,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FinancialData":
        input_raw = raw.get("inputData")
        return cls(
            summary=dict(raw.get("summary") or {}),
            recent_transactions=list(raw.get("recentTransactions") or []),
            cash_flow=list(raw.get("cashFlow") or []),
            budget_vs_actual=list(raw.get("budgetVsActual") or []),
            input_data=InputData.from_dict(input_raw) if input_raw is not None else None,
        )


def _periods_from(raw: Optional[Iterable[Dict[str, Any]]]) -> List[Period]:
    return [Period.from_dict(p) for p in raw or []]


# ---------------- Lookups ----------------
def find_branch(branches: Iterable[Branch], branch_id: str) -> Optional[Branch]:
    for branch in branches:
        if branch.id == branch_id:
            return branch
    return None


def find_branch_data(branch_data: Iterable[BranchData], branch_id: str) -> Optional[BranchData]:
    for entry in branch_data:
        if entry.branch_id == branch_id:
            return entry
    return None


def find_period(periods: Iterable[Period], period_id: str) -> Optional[Period]:
    for period in periods:
        if period.period_id == period_id:
            return period
    return None


def iter_series(input_data: InputData):
    """Yield ``(series_name, periods)`` for every branch series and the consolidated one."""
    for entry in input_data.branch_data:
        yield entry.branch_id, entry.periods
    yield CONSOLIDATED, input_data.consolidated_data.periods


def check_invariants(input_data: InputData) -> List[str]:
    problems: List[str] = []
    branch_ids = [b.id for b in input_data.branches]
    if len(set(branch_ids)) != len(branch_ids):
        problems.append("duplicate branch ids")
    for entry in input_data.branch_data:
        matches = branch_ids.count(entry.branch_id)
        if matches != 1:
            problems.append(f"branchData '{entry.branch_id}' matches {matches} branches")
    for name, periods in iter_series(input_data):
        if len(periods) != input_data.number_of_periods:
            problems.append(f"series '{name}' has {len(periods)} periods, expected {input_data.number_of_periods}")
        ids = [p.period_id for p in periods]
        if len(set(ids)) != len(ids):
            problems.append(f"series '{name}' has duplicate periodIds")
    return problems
