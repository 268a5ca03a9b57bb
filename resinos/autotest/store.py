"""JSON file backed key-value store for run options and results."""

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class DataStore:
    """Key-value store persisted as a single JSON document.

    Values are overwritten per key on every set.
    """

    def __init__(self, name: str, base: Path) -> None:
        """Initialize store at <base>/<name>.json."""
        self.path = base / f"{name}.json"

    def _load(self) -> dict[str, object]:
        if not self.path.exists():
            return {}

        try:
            with self.path.open() as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in data store {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Data store {self.path} must contain a JSON object")
        return data

    def get(self, key: str) -> object | None:
        """Return the value stored under key, or None."""
        return self._load().get(key)

    def set(self, key: str, value: object) -> None:
        """Store value under key, replacing the file atomically."""
        data = self._load()
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Stored {key} in {self.path}")
