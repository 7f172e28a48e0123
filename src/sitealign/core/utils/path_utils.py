# src/sitealign/core/utils/path_utils.py
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PathUtils:
    """
    A central utility for reliably retrieving package and site paths.
    """

    SITE_CONFIG_FILE = "sitealign.json"

    # --- Package specific paths ---

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed `sitealign` package (holds settings.json)."""
        return Path(__file__).resolve().parent.parent.parent

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def get_handlers_dir() -> Path:
        return PathUtils.get_package_root() / "core" / "handlers"

    # --- Site specific paths ---

    @staticmethod
    def get_site_root(root: Optional[PathLike] = None) -> Path:
        """
        Returns the absolute site root: the explicit `root` when given,
        the current working directory otherwise.
        """
        return Path(root).resolve() if root else Path.cwd().resolve()

    @staticmethod
    def get_site_config_file(site_root: Path) -> Path:
        return site_root / PathUtils.SITE_CONFIG_FILE

    @staticmethod
    def resolve_site_path(site_root: Path, relative: PathLike) -> Path:
        """Site-relative config paths resolve against the site root; absolute ones are kept."""
        path = Path(relative)
        return path if path.is_absolute() else site_root / path

    @staticmethod
    def public_asset_path(public_dir: Path, site_path: str) -> Optional[Path]:
        """
        Maps a site-absolute path ('/assets/logo.png') onto the public directory.
        Returns None for remote URLs or paths escaping the public directory.
        """
        if not site_path or "://" in site_path:
            return None
        clean = site_path.split("?", 1)[0].split("#", 1)[0].lstrip("/")
        if not clean:
            return None
        candidate = (public_dir / clean).resolve()
        try:
            candidate.relative_to(public_dir.resolve())
        except ValueError:
            return None
        return candidate

    # --- Helper methods ---

    @staticmethod
    def list_documents(public_dir: Path) -> List[Path]:
        """
        Every *.html file below `public_dir` in a stable, sorted order.
        Entries starting with a dot (files and directories) are skipped.
        """
        documents: List[Path] = []
        if not public_dir.is_dir():
            logger.warning("Public directory not found: %s", public_dir)
            return documents
        for dirpath, dirnames, filenames in os.walk(public_dir):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.startswith(".") or not name.lower().endswith(".html"):
                    continue
                documents.append(Path(dirpath) / name)
        return sorted(documents, key=lambda p: p.relative_to(public_dir).as_posix())
