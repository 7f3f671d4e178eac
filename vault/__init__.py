"""Upstream data sources for raw emotion timelines.

This package provides:
- A local JSON log store (one file per device and day)
- Conversion of Supabase summary rows into raw timelines
- An HTTP client for the vault proxy
"""

from .client import VaultClient, replace_nan_values
from .errors import StoreError, UpstreamError, VaultError
from .store import EMOTION_TIMELINE, LogStore
from .supabase import generate_time_points, summary_row_to_raw


__all__ = [
    "LogStore",
    "EMOTION_TIMELINE",
    "VaultClient",
    "replace_nan_values",
    "generate_time_points",
    "summary_row_to_raw",
    # Errors
    "VaultError",
    "StoreError",
    "UpstreamError",
]
