from __future__ import annotations

import asyncio

import pytest

from financials.gateway import GatewayError, InMemoryPersistenceGateway
from financials.models import Period


def test_saved_periods_are_copies(gateway):
    periods = [Period("p1", "Jan", {"revenue": 1})]
    asyncio.run(gateway.save_branch_data("b1", periods))
    periods[0].values["revenue"] = 2
    assert gateway.branch_store["b1"][0].values["revenue"] == 1
    assert gateway.calls == ["branch:b1"]


def test_fail_next_rejects_once(gateway):
    gateway.fail_next("disk full")
    with pytest.raises(GatewayError, match="disk full"):
        asyncio.run(gateway.save_consolidated_data([]))
    asyncio.run(gateway.save_consolidated_data([Period("p1")]))
    assert [p.period_id for p in gateway.consolidated_store] == ["p1"]


def test_fail_always():
    gateway = InMemoryPersistenceGateway()
    gateway.fail_always = "read only"
    with pytest.raises(GatewayError):
        asyncio.run(gateway.save_branch_data("b1", []))
    assert "b1" not in gateway.branch_store


def test_add_branch_assigns_id(gateway):
    created = asyncio.run(gateway.add_branch({"id": "ignored", "name": "NewCo"}))
    assert created.id.startswith("branch-")
    assert created.id != "ignored"
    assert created.name == "NewCo"
    assert created.periods == []
    assert [b.id for b in gateway.branches] == [created.id]
