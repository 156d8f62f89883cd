"""Bucketed JSON storage - one file per named bucket, written wholesale"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from loguru import logger


DONORS = "donors"
RECIPIENTS = "recipients"
NOTIFICATIONS = "interestNotifications"


class LocalStore:
    """
    Best-effort persistence for application state

    Each bucket is a JSON array in `<root>/<bucket>.json`. Read and write
    failures are logged and tolerated: reads fall back to the supplied
    default, writes leave the previous file in place.
    """

    def __init__(self, root_dir: Union[str, Path]):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, bucket: str) -> Path:
        return self.root_dir / f"{bucket}.json"

    def read(self, bucket: str, fallback: list[Any]) -> list[Any]:
        path = self._path(bucket)
        if not path.exists():
            return fallback
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading bucket '{bucket}' from {path}: {e}")
            return fallback
        if not isinstance(data, list):
            logger.error(f"Bucket '{bucket}' is not a JSON array, ignoring")
            return fallback
        return data

    def write(self, bucket: str, items: list[Any]) -> bool:
        path = self._path(bucket)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.root_dir, prefix=f".{bucket}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing bucket '{bucket}' to {path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False
        return True

    def clear(self):
        for bucket in (DONORS, RECIPIENTS, NOTIFICATIONS):
            self._path(bucket).unlink(missing_ok=True)
        logger.info(f"Cleared store at {self.root_dir}")

    def __repr__(self) -> str:
        return f"LocalStore({str(self.root_dir)!r})"
