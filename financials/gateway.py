from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from financials.models import Branch, Period


logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    """A save or create request was rejected."""


class PersistenceGateway(ABC):
    @abstractmethod
    async def save_branch_data(self, branch_id: str, periods: List[Period]) -> None:
        ...

    @abstractmethod
    async def save_consolidated_data(self, periods: List[Period]) -> None:
        ...

    @abstractmethod
    async def add_branch(self, branch: Dict[str, Any]) -> Branch:
        """Create a branch from everything but its id and return it with the assigned id."""


class InMemoryPersistenceGateway(PersistenceGateway):
    """Mock gateway that keeps deep copies of whatever was saved."""

    def __init__(self, *, latency: float = 0.0):
        self.latency = latency
        self.branch_store: Dict[str, List[Period]] = {}
        self.consolidated_store: List[Period] = []
        self.branches: List[Branch] = []
        self.calls: List[str] = []
        self.fail_always: Optional[str] = None
        self._fail_next: List[str] = []

    def fail_next(self, reason: str) -> None:
        self._fail_next.append(reason)

    async def _round_trip(self, call: str) -> None:
        self.calls.append(call)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self._fail_next:
            raise GatewayError(self._fail_next.pop(0))
        if self.fail_always is not None:
            raise GatewayError(self.fail_always)

    async def save_branch_data(self, branch_id: str, periods: List[Period]) -> None:
        snapshot = copy.deepcopy(list(periods))
        await self._round_trip(f"branch:{branch_id}")
        self.branch_store[branch_id] = snapshot
        logger.info("Saved %d periods for branch %s", len(snapshot), branch_id)

    async def save_consolidated_data(self, periods: List[Period]) -> None:
        snapshot = copy.deepcopy(list(periods))
        await self._round_trip("consolidated")
        self.consolidated_store = snapshot
        logger.info("Saved %d consolidated periods", len(snapshot))

    async def add_branch(self, branch: Dict[str, Any]) -> Branch:
        await self._round_trip("add")
        raw = {k: v for k, v in (branch or {}).items() if k != "id"}
        created = Branch.from_dict({**raw, "id": f"branch-{uuid.uuid4().hex[:8]}"})
        self.branches.append(copy.deepcopy(created))
        logger.info("Created branch %s (%s)", created.id, created.name)
        return created
