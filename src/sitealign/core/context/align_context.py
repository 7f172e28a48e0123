# src/sitealign/core/context/align_context.py
import logging
from pathlib import Path
from typing import Optional

from sitealign.core.managers.config_manager import ConfigManager, config_manager
from sitealign.core.managers.run_log_manager import RunLogManager
from sitealign.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class AlignContext:
    """
    Holds the state shared by every command of one invocation: the site root,
    the effective configuration and the run log manager.
    """

    def __init__(
            self,
            root: Optional[Path] = None,
            config: Optional[ConfigManager] = None,
            show_progress: bool = True,
    ):
        self.root = PathUtils.get_site_root(root)
        self.config = config or config_manager
        self.show_progress = show_progress
        self._run_log_manager: Optional[RunLogManager] = None

    def path_for(self, key: str, default: str) -> Path:
        """Resolves the `paths.<key>` setting against the site root."""
        return PathUtils.resolve_site_path(self.root, self.config.get_nested(f"paths.{key}", default))

    @property
    def public_dir(self) -> Path:
        return self.path_for("public_dir", "public")

    @property
    def run_log_manager(self) -> RunLogManager:
        if self._run_log_manager is None:
            self._run_log_manager = RunLogManager(self.path_for("run_log", "scripts/.align-log.json"))
        return self._run_log_manager

    def __repr__(self) -> str:
        return f"<AlignContext root={self.root}>"
