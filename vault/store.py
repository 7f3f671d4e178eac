"""Local JSON log store for per-device, per-day dashboard data.

Each device has a directory of daily log files; each file is one JSON
object keyed by data type ("emotion-timeline", "sed-summary", ...):

    {data_root}/{device_id}/logs/{date}.json

Example:
    >>> from vault.store import LogStore
    >>> store = LogStore("data_accounts")
    >>> raw = store.get_emotion_timeline("device-1", "2025-03-01")
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from .errors import StoreError


logger = logging.getLogger(__name__)

EMOTION_TIMELINE = "emotion-timeline"

_SAFE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class LogStore:
    """Reads and writes daily log files under a data root directory.

    Attributes:
        data_root: Directory holding one subdirectory per device.
    """

    def __init__(self, data_root: str | Path) -> None:
        """Initialize the store.

        Args:
            data_root: Directory holding one subdirectory per device.
                It is created on first write.
        """
        self.data_root = Path(data_root)

    def log_path(self, device_id: str, date: str) -> Path:
        """Return the log file path for a device and day.

        Raises:
            StoreError: If device_id or date is not a safe path component.
        """
        check_id("device_id", device_id)
        check_date(date)
        return self.data_root / device_id / "logs" / f"{date}.json"

    def read_log(self, device_id: str, date: str) -> dict[str, Any] | None:
        """Read the whole log object for a device and day.

        Args:
            device_id: Device identifier.
            date: Day as YYYY-MM-DD.

        Returns:
            The log object, or None if no log exists for that day.

        Raises:
            StoreError: If identifiers are invalid or the file is corrupt.
        """
        path = self.log_path(device_id, date)
        if not path.is_file():
            logger.info("No log found: device_id=%s date=%s", device_id, date)
            return None

        try:
            content = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreError(
                message=f"Failed to read log file: {e}",
                code="CORRUPT_LOG",
                details={"path": str(path)},
            ) from e

        if not isinstance(content, dict):
            raise StoreError(
                message="Log file does not contain a JSON object",
                code="CORRUPT_LOG",
                details={"path": str(path), "type": type(content).__name__},
            )
        return content

    def get_data(self, device_id: str, date: str, data_type: str) -> Any | None:
        """Return one data type from a day's log, or None if absent."""
        check_id("data_type", data_type)
        log = self.read_log(device_id, date)
        if log is None:
            return None
        return log.get(data_type)

    def get_emotion_timeline(self, device_id: str, date: str) -> Any | None:
        """Return the raw emotion-timeline record for a device and day."""
        return self.get_data(device_id, date, EMOTION_TIMELINE)

    def save_log_data(
        self,
        device_id: str,
        date: str,
        data_type: str,
        data: Any,
        append: bool = False,
    ) -> dict[str, Any]:
        """Store one data type in a day's log.

        With append=True, lists are concatenated and objects merged into
        the existing value; any other combination overwrites.

        Args:
            device_id: Device identifier.
            date: Day as YYYY-MM-DD.
            data_type: Key within the log object.
            data: JSON-serializable value to store.
            append: Whether to combine with an existing value.

        Returns:
            The full log object as written.

        Raises:
            StoreError: If identifiers are invalid, the existing file is
                corrupt, or the file cannot be written.
        """
        check_id("data_type", data_type)
        log = self.read_log(device_id, date) or {}

        existing = log.get(data_type)
        if append and isinstance(existing, list) and isinstance(data, list):
            log[data_type] = existing + data
        elif append and isinstance(existing, dict) and isinstance(data, dict):
            log[data_type] = {**existing, **data}
        else:
            log[data_type] = data

        path = self.log_path(device_id, date)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(log, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(
                message=f"Failed to write log file: {e}",
                code="WRITE_FAILED",
                details={"path": str(path)},
            ) from e

        logger.info(
            "Log saved: device_id=%s date=%s data_type=%s append=%s",
            device_id,
            date,
            data_type,
            append,
        )
        return log

    def list_dates(self, device_id: str) -> list[str]:
        """Return the days that have a log for a device, oldest first."""
        check_id("device_id", device_id)
        logs_dir = self.data_root / device_id / "logs"
        if not logs_dir.is_dir():
            return []
        return sorted(
            path.stem
            for path in logs_dir.glob("*.json")
            if _DATE.match(path.stem)
        )


def check_id(name: str, value: str) -> None:
    """Reject identifiers that could escape the data root or a URL path.

    Raises:
        StoreError: With code INVALID_ID.
    """
    if not isinstance(value, str) or not _SAFE_ID.match(value) or ".." in value:
        raise StoreError(
            message=f"Invalid {name}: {value!r}",
            code="INVALID_ID",
            details={name: value},
        )


def check_date(date: str) -> None:
    """Reject anything that is not shaped like YYYY-MM-DD.

    Raises:
        StoreError: With code INVALID_ID.
    """
    if not isinstance(date, str) or not _DATE.match(date):
        raise StoreError(
            message=f"date must be YYYY-MM-DD, got {date!r}",
            code="INVALID_ID",
            details={"date": date},
        )
