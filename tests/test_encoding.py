from __future__ import annotations

import json

import numpy as np
import pandas as pd

from financials_api.encoding import encode, error_response, json_response


def test_frames_become_records_with_nulls():
    df = pd.DataFrame({"position": [0, 1], "revenue": [1.5, np.nan]})
    assert encode({"rollup": df}) == {"rollup": [{"position": 0, "revenue": 1.5}, {"position": 1, "revenue": None}]}


def test_numpy_scalars_and_infinities():
    out = encode({"count": np.int64(3), "flag": np.bool_(True), "ratio": float("inf"), "items": np.array([1, 2])})
    assert out == {"count": 3, "flag": True, "ratio": None, "items": [1, 2]}


def test_responses():
    assert json.loads(json_response({"a": np.float64(2.0)}).body) == {"a": 2.0}
    response = error_response(KeyError("x"))
    assert response.status_code == 500
    assert json.loads(response.body) == {"error": "'x'", "type": "KeyError"}
