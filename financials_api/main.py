from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from financials.charts import period_series_chart
from financials.consolidation import consolidation_variance, rollup_branches
from financials.data import MockFinancialsDataSource
from financials.gateway import InMemoryPersistenceGateway
from financials.models import check_invariants
from financials.store import FinancialsStore
from financials_api.encoding import error_response, json_response
from financials_api.schemas import (
    CellUpdateModel,
    FiltersModel,
    NewBranchModel,
    NumberOfPeriodsModel,
    PeriodTypeModel,
    SelectedBranchModel,
)


logger = logging.getLogger(__name__)

CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
MOCK_LATENCY_ENV = "FINANCIALS_MOCK_LATENCY"


def default_store() -> FinancialsStore:
    latency = float(os.environ.get(MOCK_LATENCY_ENV, "0") or 0)
    return FinancialsStore(MockFinancialsDataSource(latency=latency), InMemoryPersistenceGateway(latency=latency))


def create_app(store: Optional[FinancialsStore] = None) -> FastAPI:
    app = FastAPI(title="Financials Consolidation API", version="0.1.0")
    app.state.store = store or default_store()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _store(request: Request) -> FinancialsStore:
        return request.app.state.store

    @app.get("/financials")
    async def get_state(request: Request):
        try:
            return json_response(_store(request).state.to_dict())
        except Exception as exc:
            logger.exception("get_state failed")
            return error_response(exc)

    @app.post("/financials/fetch")
    async def fetch(request: Request, filters: Optional[FiltersModel] = None):
        try:
            store = _store(request)
            if filters is not None:
                store.set_filters(filters.model_dump(exclude_unset=True))
            await store.fetch_financial_data()
            return json_response(store.state.to_dict())
        except Exception as exc:
            logger.exception("fetch failed")
            return error_response(exc)

    @app.put("/financials/filters")
    async def put_filters(request: Request, filters: FiltersModel):
        try:
            return json_response(_store(request).set_filters(filters.model_dump(exclude_unset=True)).to_dict())
        except Exception as exc:
            logger.exception("put_filters failed")
            return error_response(exc)

    @app.put("/financials/selected-branch")
    async def put_selected_branch(request: Request, body: SelectedBranchModel):
        try:
            return json_response(_store(request).set_selected_branch(body.branch_id).to_dict())
        except Exception as exc:
            logger.exception("put_selected_branch failed")
            return error_response(exc)

    @app.patch("/financials/cell")
    async def patch_cell(request: Request, body: CellUpdateModel):
        try:
            state = _store(request).update_period_field(body.target, body.period_id, body.field_name, body.value)
            return json_response(state.to_dict())
        except Exception as exc:
            logger.exception("patch_cell failed")
            return error_response(exc)

    @app.put("/financials/period-type")
    async def put_period_type(request: Request, body: PeriodTypeModel):
        try:
            return json_response(_store(request).set_period_type(body.period_type).to_dict())
        except Exception as exc:
            logger.exception("put_period_type failed")
            return error_response(exc)

    @app.put("/financials/number-of-periods")
    async def put_number_of_periods(request: Request, body: NumberOfPeriodsModel):
        try:
            return json_response(_store(request).set_number_of_periods(body.number_of_periods).to_dict())
        except Exception as exc:
            logger.exception("put_number_of_periods failed")
            return error_response(exc)

    @app.post("/financials/rebuild")
    async def rebuild(request: Request):
        try:
            return json_response(_store(request).rebuild_periods().to_dict())
        except Exception as exc:
            logger.exception("rebuild failed")
            return error_response(exc)

    @app.post("/financials/branches/{branch_id}/save")
    async def save_branch(request: Request, branch_id: str):
        try:
            store = _store(request)
            await store.save_branch_data(branch_id)
            return json_response(store.state.to_dict())
        except Exception as exc:
            logger.exception("save_branch failed")
            return error_response(exc)

    @app.post("/financials/consolidated/save")
    async def save_consolidated(request: Request):
        try:
            store = _store(request)
            await store.save_consolidated_data()
            return json_response(store.state.to_dict())
        except Exception as exc:
            logger.exception("save_consolidated failed")
            return error_response(exc)

    @app.post("/financials/branches")
    async def add_branch(request: Request, body: NewBranchModel):
        try:
            store = _store(request)
            created = await store.add_branch(body.model_dump())
            return json_response({"branch": created.to_dict() if created is not None else None, "state": store.state.to_dict()})
        except Exception as exc:
            logger.exception("add_branch failed")
            return error_response(exc)

    @app.post("/financials/clear-error")
    async def clear_error(request: Request):
        try:
            return json_response(_store(request).clear_error().to_dict())
        except Exception as exc:
            logger.exception("clear_error failed")
            return error_response(exc)

    @app.post("/financials/reset")
    async def reset(request: Request):
        try:
            return json_response(_store(request).reset().to_dict())
        except Exception as exc:
            logger.exception("reset failed")
            return error_response(exc)

    @app.get("/financials/rollup")
    async def rollup(request: Request):
        try:
            input_data = _store(request).state.input_data
            if input_data is None:
                return json_response({"rollup": [], "variance": []})
            return json_response({"rollup": rollup_branches(input_data), "variance": consolidation_variance(input_data)})
        except Exception as exc:
            logger.exception("rollup failed")
            return error_response(exc)

    @app.get("/financials/consistency")
    async def consistency(request: Request):
        try:
            input_data = _store(request).state.input_data
            problems = check_invariants(input_data) if input_data is not None else []
            return json_response({"consistent": not problems, "problems": problems})
        except Exception as exc:
            logger.exception("consistency failed")
            return error_response(exc)

    @app.get("/financials/chart")
    async def chart(request: Request, field: str = Query(default="revenue")):
        try:
            input_data = _store(request).state.input_data
            spec = period_series_chart(input_data, field) if input_data is not None else None
            return json_response({"field": field, "chart": spec})
        except Exception as exc:
            logger.exception("chart failed")
            return error_response(exc)

    return app


app = create_app()
