"""Typed description of the editable fields of a period.

Edits run in permissive mode unless a :class:`FieldSchema` is supplied, in
which case unknown fields and values of the wrong kind are rejected.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from financials.models import FieldValue


NUMERIC = "numeric"
TEXT = "text"
FIELD_KINDS = (NUMERIC, TEXT)


def value_kind(value: object) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return NUMERIC
    if isinstance(value, str):
        return TEXT
    return None


@dataclass(frozen=True)
class FieldSchema:
    fields: Mapping[str, str] = field(default_factory=dict)
    # Optional per-period-type overrides, merged over ``fields``.
    by_period_type: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for kinds in [self.fields, *self.by_period_type.values()]:
            for name, kind in kinds.items():
                if kind not in FIELD_KINDS:
                    raise ValueError(f"Unknown field kind {kind!r} for field {name!r}")

    def fields_for(self, period_type: Optional[str] = None) -> Dict[str, str]:
        out = dict(self.fields)
        if period_type is not None:
            out.update(self.by_period_type.get(period_type, {}))
        return out

    def accepts(self, field_name: str, value: FieldValue, period_type: Optional[str] = None) -> bool:
        if field_name == "label":
            return isinstance(value, str)
        expected = self.fields_for(period_type).get(field_name)
        if expected is None:
            return False
        return value_kind(value) == expected


DEFAULT_SCHEMA = FieldSchema(
    fields={
        "revenue": NUMERIC,
        "costOfSales": NUMERIC,
        "grossProfit": NUMERIC,
        "operatingExpenses": NUMERIC,
        "expenses": NUMERIC,
        "netProfit": NUMERIC,
        "cash": NUMERIC,
        "accountsReceivable": NUMERIC,
        "accountsPayable": NUMERIC,
        "inventory": NUMERIC,
        "notes": TEXT,
    }
)
