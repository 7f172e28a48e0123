# src/sitealign/core/managers/run_log_manager.py
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from sitealign.core.services.json_service import to_json
from sitealign.model import RunRecord

logger = logging.getLogger(__name__)


class RunLogManager:
    """
    Owns the shared run log (one JSON object, one section per command).

    The log is read once with `load()` before a batch and written once with
    `flush()` after it. Sections of other commands are carried over untouched.
    """

    def __init__(self, log_path: Path):
        self.log_path = log_path
        self._data: Dict[str, Any] = {}
        self._loaded = False
        self._dirty = False

    def load(self) -> Dict[str, Any]:
        """Reads the log from disk. A missing or corrupt log yields an empty one."""
        self._data = {}
        self._loaded = True
        self._dirty = False
        if not self.log_path.is_file():
            logger.debug("No run log at %s yet.", self.log_path)
            return self._data
        try:
            with open(self.log_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Run log %s is unreadable, starting a new one: %s", self.log_path, e)
            return self._data
        if not isinstance(data, dict):
            logger.warning("Run log %s is not a JSON object, starting a new one.", self.log_path)
            return self._data
        self._data = data
        return self._data

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    @property
    def sections(self) -> Dict[str, Any]:
        self._ensure_loaded()
        return self._data

    def get_section(self, name: str) -> Optional[Dict[str, Any]]:
        section = self.sections.get(name)
        return section if isinstance(section, dict) else None

    def record(self, name: str, record: RunRecord) -> None:
        """Replaces the section `name` with `record`; nothing is written until `flush()`."""
        self._ensure_loaded()
        self._data[name] = record.to_log()
        self._dirty = True

    def flush(self) -> bool:
        """
        Writes the log atomically (temp file in the same directory, then replace).
        Returns False when there was nothing to write.
        """
        if not self._dirty:
            return False
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".align-log-", suffix=".tmp", dir=str(self.log_path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(to_json(self._data, indent=2) + "\n")
            os.replace(tmp_name, self.log_path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        self._dirty = False
        logger.debug("Run log written to %s", self.log_path)
        return True
