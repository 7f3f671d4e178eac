"""HTTP client for the vault proxy that serves raw dashboard data."""

import logging
import math
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .errors import UpstreamError
from .store import check_date, check_id


logger = logging.getLogger(__name__)


def replace_nan_values(obj: Any) -> Any:
    """Recursively replace NaN floats and "NaN" strings with None.

    Upstream analytics sometimes serialize missing measurements as NaN;
    mapping them to None makes them gaps rather than zeros.

    Args:
        obj: Decoded JSON value.

    Returns:
        A new value with NaNs replaced; the input is not modified.
    """
    if isinstance(obj, float):
        return None if math.isnan(obj) else obj
    if isinstance(obj, str):
        return None if obj.lower() == "nan" else obj
    if isinstance(obj, list):
        return [replace_nan_values(item) for item in obj]
    if isinstance(obj, dict):
        return {key: replace_nan_values(value) for key, value in obj.items()}
    return obj


class VaultClient:
    """Client for the vault proxy API."""

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout)
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            transport=self.transport,
            headers={"Accept": "application/json"},
        )

    def fetch_emotion_timeline(
        self,
        device_id: str,
        date: str,
        nan_as_gap: bool = True,
    ) -> Optional[dict]:
        """Fetch the raw emotion timeline for a device and day.

        Args:
            device_id: Device identifier.
            date: Day as YYYY-MM-DD.
            nan_as_gap: Replace NaN values with None before returning.

        Returns:
            Raw emotion timeline, or None when the day has no measurement
            (HTTP 404).

        Raises:
            StoreError: If device_id or date is not a safe path segment.
                Nothing is sent upstream in that case.
            UpstreamError: On transport failure, a non-2xx status other
                than 404, a non-JSON body, or a body with an "error" key.
        """
        check_id("device_id", device_id)
        check_date(date)
        path = (
            "/api/proxy/emotion-timeline/"
            f"{quote(device_id, safe='')}/{quote(date, safe='')}"
        )
        logger.info("Fetching emotion timeline: device_id=%s date=%s", device_id, date)

        try:
            with self._client() as client:
                response = client.get(f"{self.base_url}{path}")
        except httpx.HTTPError as e:
            raise UpstreamError(
                message=f"Vault API request failed: {e}",
                code="UPSTREAM_UNAVAILABLE",
                details={"path": path},
            ) from e

        if response.status_code == 404:
            logger.info("No emotion timeline: device_id=%s date=%s", device_id, date)
            return None

        if not response.is_success:
            raise UpstreamError(
                message=f"Vault API returned HTTP {response.status_code}",
                code=f"HTTP_{response.status_code}",
                details={"path": path, "body": response.text[:500]},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                message="Vault API returned a non-JSON body",
                code="INVALID_RESPONSE",
                details={"path": path},
            ) from e

        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError(
                message=str(data["error"]),
                code="UPSTREAM_ERROR",
                details={"path": path},
            )

        return replace_nan_values(data) if nan_as_gap else data
