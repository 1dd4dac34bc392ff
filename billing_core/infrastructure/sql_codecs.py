"""Conversions between domain values and SQL column values."""

from datetime import datetime
import json
from typing import Any

from billing_core.domain.models import PricingBreakdown


def datetime_to_text(value: datetime | None) -> str | None:
    """Render a timestamp as fixed-width ISO-8601 text.

    Microseconds are always included so text order matches time order for
    timestamps in the same offset.
    """
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def text_to_datetime(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def dump_json(payload: Any) -> str:
    """Serialize to compact JSON with sorted keys."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def load_json(raw: str | None, default: Any = None) -> Any:
    if raw is None or raw == "":
        return default
    return json.loads(raw)


def dump_breakdown(breakdown: PricingBreakdown) -> str:
    return dump_json(breakdown.to_dict())


def load_breakdown(raw: str) -> PricingBreakdown:
    return PricingBreakdown.from_dict(load_json(raw))


__all__ = [
    "datetime_to_text",
    "text_to_datetime",
    "dump_json",
    "load_json",
    "dump_breakdown",
    "load_breakdown",
]
