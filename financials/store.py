from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional

from financials.consolidation import set_number_of_periods, set_period_type
from financials.data import FinancialsDataSource, rebuild_input_data
from financials.editing import update_period_field
from financials.filters import FinancialsFilters, merge_filters
from financials.gateway import PersistenceGateway
from financials.models import CONSOLIDATED, Branch, FieldValue, FinancialData, InputData, Period, find_branch_data
from financials.schema import FieldSchema


logger = logging.getLogger(__name__)

FETCH_FAILED = "Failed to load financial data"
SAVE_FAILED = "Failed to save financial data"
ADD_BRANCH_FAILED = "Failed to add branch"


@dataclass
class FinancialsState:
    data: Optional[FinancialData] = None
    filters: FinancialsFilters = field(default_factory=FinancialsFilters)
    loading: bool = False
    saving: bool = False
    error: Optional[str] = None
    last_updated: Optional[str] = None
    selected_branch_id: Optional[str] = None
    # In-flight bookkeeping: flags only clear once every overlapping request settles.
    pending_fetches: int = 0
    pending_saves: Dict[str, int] = field(default_factory=dict)

    @property
    def input_data(self) -> Optional[InputData]:
        return self.data.input_data if self.data is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data.to_dict() if self.data is not None else None,
            "filters": self.filters.to_dict(),
            "loading": self.loading,
            "saving": self.saving,
            "error": self.error,
            "lastUpdated": self.last_updated,
            "selectedBranchId": self.selected_branch_id,
            "pendingSaves": sorted(self.pending_saves),
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _message(exc: BaseException, default: str) -> str:
    return str(exc) or default


# ---------------- Transitions ----------------
def fetch_pending(state: FinancialsState) -> FinancialsState:
    state.pending_fetches += 1
    state.loading = True
    state.error = None
    return state


def _fetch_settled(state: FinancialsState) -> None:
    state.pending_fetches = max(0, state.pending_fetches - 1)
    state.loading = state.pending_fetches > 0


def fetch_fulfilled(state: FinancialsState, payload: FinancialData, now: Optional[str] = None) -> FinancialsState:
    _fetch_settled(state)
    state.data = payload
    state.last_updated = now or _now()
    return state


def fetch_rejected(state: FinancialsState, message: str) -> FinancialsState:
    _fetch_settled(state)
    state.error = message
    return state


def save_pending(state: FinancialsState, key: str) -> FinancialsState:
    state.pending_saves[key] = state.pending_saves.get(key, 0) + 1
    state.saving = True
    return state


def _save_settled(state: FinancialsState, key: str) -> None:
    remaining = state.pending_saves.get(key, 0) - 1
    if remaining > 0:
        state.pending_saves[key] = remaining
    else:
        state.pending_saves.pop(key, None)
    state.saving = bool(state.pending_saves)


def save_fulfilled(state: FinancialsState, key: str) -> FinancialsState:
    _save_settled(state, key)
    return state


def save_rejected(state: FinancialsState, key: str, message: str) -> FinancialsState:
    _save_settled(state, key)
    state.error = message
    return state


def save_cancelled(state: FinancialsState, key: str) -> FinancialsState:
    _save_settled(state, key)
    return state


def fetch_cancelled(state: FinancialsState) -> FinancialsState:
    _fetch_settled(state)
    return state


def add_branch_fulfilled(state: FinancialsState, branch: Branch) -> FinancialsState:
    _save_settled(state, "add")
    # Only the branch list grows; its series is populated separately.
    if state.input_data is None:
        logger.debug("Dropped created branch %s: no financial data loaded", branch.id)
        return state
    state.input_data.branches.append(branch)
    return state


class FinancialsStore:
    """Owns one :class:`FinancialsState` and applies intents to it.

    Synchronous intents (edits, reconfiguration, filters) apply immediately.
    The async intents await the data source or gateway and apply their
    settled transition in completion order; nothing is rolled back on failure.
    """

    def __init__(
        self,
        data_source: FinancialsDataSource,
        gateway: PersistenceGateway,
        *,
        schema: Optional[FieldSchema] = None,
        initial_filters: Optional[FinancialsFilters] = None,
    ):
        self.data_source = data_source
        self.gateway = gateway
        self.schema = schema
        self._initial_filters = initial_filters or FinancialsFilters()
        self.state = FinancialsState(filters=self._initial_filters)

    # ---------------- Sync intents ----------------
    def set_filters(self, partial: Optional[dict]) -> FinancialsState:
        self.state.filters = merge_filters(self.state.filters, partial)
        return self.state

    def set_selected_branch(self, branch_id: Optional[str]) -> FinancialsState:
        self.state.selected_branch_id = branch_id
        return self.state

    def clear_error(self) -> FinancialsState:
        self.state.error = None
        return self.state

    def reset(self) -> FinancialsState:
        self.state = FinancialsState(filters=self._initial_filters)
        return self.state

    def update_period_field(self, target: str, period_id: str, field_name: str, value: FieldValue) -> FinancialsState:
        if self.state.input_data is not None:
            update_period_field(self.state.input_data, target, period_id, field_name, value, schema=self.schema)
        return self.state

    def set_period_type(self, new_type: object) -> FinancialsState:
        if self.state.input_data is not None:
            set_period_type(self.state.input_data, new_type)
        return self.state

    def set_number_of_periods(self, n: object) -> FinancialsState:
        if self.state.input_data is not None:
            set_number_of_periods(self.state.input_data, n)
        return self.state

    def rebuild_periods(self, *, end: Optional[object] = None) -> FinancialsState:
        if self.state.input_data is not None:
            if end is None:
                end = self.data_source.period_end()
            rebuild_input_data(self.state.input_data, end=end)
        return self.state

    # ---------------- Async intents ----------------
    async def fetch_financial_data(self, filters: Optional[FinancialsFilters] = None) -> Optional[FinancialData]:
        filters = filters or self.state.filters
        fetch_pending(self.state)
        try:
            payload = await self.data_source.get_financial_data(filters)
        except asyncio.CancelledError:
            fetch_cancelled(self.state)
            raise
        except Exception as exc:
            logger.exception("fetch_financial_data failed")
            fetch_rejected(self.state, _message(exc, FETCH_FAILED))
            return None
        fetch_fulfilled(self.state, payload)
        return payload

    async def _save(self, key: str, call: Awaitable[None]) -> bool:
        save_pending(self.state, key)
        try:
            await call
        except asyncio.CancelledError:
            save_cancelled(self.state, key)
            raise
        except Exception as exc:
            logger.exception("save %s failed", key)
            save_rejected(self.state, key, _message(exc, SAVE_FAILED))
            return False
        save_fulfilled(self.state, key)
        return True

    async def save_branch_data(self, branch_id: str) -> bool:
        periods: List[Period] = []
        entry = find_branch_data(self.state.input_data.branch_data, branch_id) if self.state.input_data else None
        if entry is not None:
            periods = list(entry.periods)
        return await self._save(f"branch:{branch_id}", self.gateway.save_branch_data(branch_id, periods))

    async def save_consolidated_data(self) -> bool:
        input_data = self.state.input_data
        periods = list(input_data.consolidated_data.periods) if input_data is not None else []
        return await self._save(CONSOLIDATED, self.gateway.save_consolidated_data(periods))

    async def add_branch(self, branch: Dict[str, Any]) -> Optional[Branch]:
        save_pending(self.state, "add")
        try:
            created = await self.gateway.add_branch(branch)
        except asyncio.CancelledError:
            save_cancelled(self.state, "add")
            raise
        except Exception as exc:
            logger.exception("add_branch failed")
            save_rejected(self.state, "add", _message(exc, ADD_BRANCH_FAILED))
            return None
        add_branch_fulfilled(self.state, created)
        return created
