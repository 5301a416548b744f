from __future__ import annotations

import pytest

from financials.data import MockFinancialsDataSource, build_input_data
from financials.gateway import InMemoryPersistenceGateway
from financials.models import InputData
from financials.store import FinancialsStore


END = "2025-06-15"


@pytest.fixture
def input_data() -> InputData:
    return build_input_data("monthly", 4, end=END)


@pytest.fixture
def data_source() -> MockFinancialsDataSource:
    return MockFinancialsDataSource(end=END)


@pytest.fixture
def gateway() -> InMemoryPersistenceGateway:
    return InMemoryPersistenceGateway()


@pytest.fixture
def store(data_source, gateway) -> FinancialsStore:
    return FinancialsStore(data_source, gateway)
