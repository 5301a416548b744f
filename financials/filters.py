from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional


DEFAULT_PERIOD = "currentMonth"


@dataclass(frozen=True)
class FinancialsFilters:
    period: str = DEFAULT_PERIOD
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if out["category"] is None:
            out.pop("category")
        return out


def normalize_filters(raw: Optional[dict]) -> FinancialsFilters:
    raw = raw or {}
    period = str(raw.get("period") or DEFAULT_PERIOD).strip() or DEFAULT_PERIOD
    category = raw.get("category")
    category = str(category).strip() if category is not None else None
    return FinancialsFilters(period=period, category=category or None)


def merge_filters(current: FinancialsFilters, partial: Optional[dict]) -> FinancialsFilters:
    """Shallow-merge ``partial`` into ``current``; keys not present are kept."""
    if not partial:
        return current
    updates: Dict[str, Any] = {}
    if "period" in partial and partial["period"] is not None:
        updates["period"] = str(partial["period"])
    if "category" in partial:
        category = partial["category"]
        updates["category"] = str(category) if category is not None else None
    return replace(current, **updates)
