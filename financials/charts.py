from __future__ import annotations

from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from financials.consolidation import series_frame
from financials.models import CONSOLIDATED, InputData, find_branch, iter_series

alt.data_transformers.disable_max_rows()


def period_series_chart(input_data: InputData, field_name: str) -> Optional[Dict[str, Any]]:
    """Vega-Lite spec of one field across periods, one line per branch plus the consolidated series."""
    frames = []
    for name, periods in iter_series(input_data):
        df = series_frame(periods)
        if df.empty or field_name not in df.columns:
            continue
        branch = find_branch(input_data.branches, name)
        df["series"] = branch.name if branch is not None else ("Consolidated" if name == CONSOLIDATED else name)
        frames.append(df[["position", "label", "series", field_name]])
    if not frames:
        return None

    long_df = pd.concat(frames, ignore_index=True)
    long_df[field_name] = pd.to_numeric(long_df[field_name], errors="coerce")
    long_df = long_df.dropna(subset=[field_name])
    if long_df.empty:
        return None

    hover = alt.selection_point(fields=["series"], on="mouseover", empty="all")
    line = (
        alt.Chart(long_df)
        .mark_line(point={"filled": True})
        .encode(
            x=alt.X("label:N", title="Period", sort=alt.SortField("position"), axis=alt.Axis(grid=False)),
            y=alt.Y(f"{field_name}:Q", title=field_name, axis=alt.Axis(format="$,.0f", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("series:N", title="Series"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[
                alt.Tooltip("label:N", title="Period"),
                alt.Tooltip("series:N", title="Series"),
                alt.Tooltip(f"{field_name}:Q", title=field_name, format="$,.0f"),
            ],
        )
        .add_params(hover)
    )
    return line.to_dict()
