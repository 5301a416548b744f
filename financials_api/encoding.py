from __future__ import annotations

import math

import numpy as np
import pandas as pd
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _finite_or_none(value: object) -> float | None:
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


ENCODERS = {
    type(pd.NA): lambda _: None,
    np.integer: int,
    float: _finite_or_none,
    np.floating: _finite_or_none,
    np.bool_: bool,
    np.ndarray: lambda arr: arr.tolist(),
    pd.Timestamp: lambda ts: ts.isoformat(),
}


def encode(data: object) -> object:
    """JSON-ready copy of ``data``; DataFrames become record lists and NaN becomes null."""
    if isinstance(data, pd.DataFrame):
        data = data.to_dict(orient="records")
    elif isinstance(data, dict):
        data = {k: encode(v) for k, v in data.items()}
    return jsonable_encoder(data, custom_encoder=ENCODERS)


def json_response(data: object, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=encode(data))


def error_response(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})
