from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from financials.consolidation import is_valid_number_of_periods, numeric_fields, period_labels
from financials.filters import FinancialsFilters
from financials.models import (
    Branch,
    BranchData,
    ConsolidatedSeries,
    FinancialData,
    InputData,
    Period,
    find_branch_data,
    find_period,
)


logger = logging.getLogger(__name__)


class DataSourceError(RuntimeError):
    """The financial data source could not produce a payload."""


class FinancialsDataSource(ABC):
    @abstractmethod
    async def get_financial_data(self, filters: FinancialsFilters) -> FinancialData:
        ...

    def period_end(self) -> Optional[object]:
        """Date the served series end on; ``None`` means today."""
        return None


# ---------------- Canned payload blocks ----------------
def _metrics(revenue: float, expenses: float, revenue_growth: float, expense_growth: float) -> Dict[str, float]:
    net = revenue - expenses
    return {
        "totalRevenue": revenue,
        "totalExpenses": expenses,
        "netProfit": net,
        "profitMargin": round(net / revenue * 100, 1) if revenue else 0.0,
        "revenueGrowth": revenue_growth,
        "expenseGrowth": expense_growth,
    }


SUMMARY = {
    "currentMonth": _metrics(125000, 89000, 12.5, 8.3),
    "previousMonth": _metrics(111000, 82000, 8.2, 5.7),
    "yearToDate": _metrics(1450000, 1020000, 15.3, 9.8),
}

RECENT_TRANSACTIONS = [
    {"id": "1", "type": "income", "category": "Sales Revenue", "amount": 15000, "description": "Monthly subscription revenue", "date": "2025-01-15"},
    {"id": "2", "type": "expense", "category": "Marketing", "amount": 3500, "description": "Social media advertising", "date": "2025-01-14"},
    {"id": "3", "type": "income", "category": "Service Revenue", "amount": 8500, "description": "Consulting services", "date": "2025-01-13"},
    {"id": "4", "type": "expense", "category": "Operations", "amount": 2200, "description": "Office supplies and utilities", "date": "2025-01-12"},
]

CASH_FLOW = [
    {"month": month, "income": income, "expenses": expenses, "netFlow": income - expenses}
    for month, income, expenses in [
        ("Jan", 125000, 89000),
        ("Dec", 111000, 82000),
        ("Nov", 118000, 85000),
        ("Oct", 105000, 78000),
        ("Sep", 112000, 81000),
        ("Aug", 108000, 79000),
    ]
]


def _budget_row(category: str, budgeted: float, actual: float) -> Dict[str, Any]:
    variance = actual - budgeted
    return {
        "category": category,
        "budgeted": budgeted,
        "actual": actual,
        "variance": variance,
        "variancePercentage": round(variance / budgeted * 100, 1) if budgeted else 0.0,
    }


BUDGET_VS_ACTUAL = [
    _budget_row("Marketing", 15000, 12500),
    _budget_row("Operations", 25000, 27800),
    _budget_row("Salaries", 45000, 45000),
    _budget_row("Technology", 8000, 6200),
]

DEFAULT_BRANCHES = [
    {"id": "branch-1", "name": "Main Street"},
    {"id": "branch-2", "name": "Harbour View"},
]

# Monthly revenue base per branch, scaled to the period type.
BASE_REVENUE = 60000.0
PERIOD_SCALE = {"daily": 1 / 30, "weekly": 12 / 52, "monthly": 1.0, "quarterly": 3.0, "yearly": 12.0}


# ---------------- Series builders ----------------
def _mock_values(branch_index: int, position: int, period_type: str) -> Dict[str, Any]:
    revenue = round(BASE_REVENUE * PERIOD_SCALE[period_type] * (1 + 0.25 * branch_index) * (1 + 0.04 * position), 2)
    cost_of_sales = round(revenue * 0.35, 2)
    operating_expenses = round(revenue * 0.4, 2)
    gross_profit = round(revenue - cost_of_sales, 2)
    return {
        "revenue": revenue,
        "costOfSales": cost_of_sales,
        "grossProfit": gross_profit,
        "operatingExpenses": operating_expenses,
        "netProfit": round(gross_profit - operating_expenses, 2),
        "notes": "",
    }


def _sum_values(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for row in rows:
        for key, value in row.items():
            if isinstance(value, str):
                out.setdefault(key, value)
            else:
                out[key] = round(out.get(key, 0) + value, 2)
    return out


def build_input_data(
    period_type: str = "monthly",
    number_of_periods: int = 4,
    *,
    branches: Optional[List[Dict[str, Any]]] = None,
    end: Optional[object] = None,
) -> InputData:
    """Generate a consistent snapshot: every series has ``number_of_periods`` rows."""
    if not is_valid_number_of_periods(number_of_periods):
        raise ValueError(f"number_of_periods out of range: {number_of_periods!r}")
    keys = period_labels(period_type, number_of_periods, end=end)
    branch_list = [Branch.from_dict({**b, "periods": []}) for b in (branches if branches is not None else DEFAULT_BRANCHES)]

    branch_data: List[BranchData] = []
    per_position: List[List[Dict[str, Any]]] = [[] for _ in keys]
    for idx, branch in enumerate(branch_list):
        periods = []
        for pos, key in enumerate(keys):
            values = _mock_values(idx, pos, period_type)
            per_position[pos].append(values)
            periods.append(Period(period_id=key["periodId"], label=key["label"], values=values))
        branch_data.append(BranchData(branch_id=branch.id, periods=periods))

    consolidated = ConsolidatedSeries(
        periods=[
            Period(period_id=key["periodId"], label=key["label"], values=_sum_values(per_position[pos]))
            for pos, key in enumerate(keys)
        ]
    )
    return InputData(
        branches=branch_list,
        branch_data=branch_data,
        consolidated_data=consolidated,
        selected_period_type=period_type,
        number_of_periods=number_of_periods,
    )


def _rebuild_series(periods: List[Period], keys: List[Dict[str, str]], blank_fields: List[str]) -> List[Period]:
    out: List[Period] = []
    for key in keys:
        existing = find_period(periods, key["periodId"])
        if existing is not None:
            out.append(Period(period_id=key["periodId"], label=key["label"], values=dict(existing.values)))
        else:
            out.append(Period(period_id=key["periodId"], label=key["label"], values={f: 0 for f in blank_fields}))
    return out


def rebuild_input_data(input_data: InputData, *, end: Optional[object] = None) -> InputData:
    """Regenerate every series for the stored period type and count.

    Periods whose id survives keep their values; new periods start at zero for
    the series' numeric fields. Every branch gets a series, and series without
    a branch are dropped.
    """
    keys = period_labels(input_data.selected_period_type, input_data.number_of_periods, end=end)
    branch_data: List[BranchData] = []
    for branch in input_data.branches:
        entry = find_branch_data(input_data.branch_data, branch.id)
        periods = entry.periods if entry is not None else []
        branch_data.append(BranchData(branch_id=branch.id, periods=_rebuild_series(periods, keys, numeric_fields(periods))))

    consolidated_periods = input_data.consolidated_data.periods
    input_data.branch_data = branch_data
    input_data.consolidated_data = ConsolidatedSeries(
        periods=_rebuild_series(consolidated_periods, keys, numeric_fields(consolidated_periods))
    )
    return input_data


class MockFinancialsDataSource(FinancialsDataSource):
    """Canned data source; regenerates the series for its configured period type/count."""

    def __init__(
        self,
        *,
        period_type: str = "monthly",
        number_of_periods: int = 4,
        branches: Optional[List[Dict[str, Any]]] = None,
        latency: float = 0.0,
        end: Optional[object] = None,
    ):
        self.period_type = period_type
        self.number_of_periods = number_of_periods
        self.branches = branches
        self.latency = latency
        self.end = end if end is not None else date.today()
        self.requests: List[FinancialsFilters] = []
        self._fail_next: List[str] = []

    def period_end(self) -> Optional[object]:
        return self.end

    def fail_next(self, reason: str) -> None:
        self._fail_next.append(reason)

    async def get_financial_data(self, filters: FinancialsFilters) -> FinancialData:
        self.requests.append(filters)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self._fail_next:
            raise DataSourceError(self._fail_next.pop(0))
        logger.info("Serving mock financial data (%s x%d) for %s", self.period_type, self.number_of_periods, filters)
        return FinancialData(
            summary=copy.deepcopy(SUMMARY),
            recent_transactions=copy.deepcopy(RECENT_TRANSACTIONS),
            cash_flow=copy.deepcopy(CASH_FLOW),
            budget_vs_actual=copy.deepcopy(BUDGET_VS_ACTUAL),
            input_data=build_input_data(self.period_type, self.number_of_periods, branches=self.branches, end=self.end),
        )
