"""Shared utilities package."""

from .decimal_utils import coerce_decimal, decimal_places
from .utils import get_project_root, new_id, utc_now

__all__ = [
    "coerce_decimal",
    "decimal_places",
    "get_project_root",
    "new_id",
    "utc_now",
]
