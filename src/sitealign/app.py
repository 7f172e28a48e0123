from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sitealign.core.command_registry import dispatch, register_all_commands
from sitealign.core.context.align_context import AlignContext
from sitealign.core.managers.config_manager import config_manager
from sitealign.core.utils.configure_logging import configure_logger
from sitealign.core.utils.helptext import get_help_text
from sitealign.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitealign",
        description="Idempotent metadata reconciliation for static HTML sites.",
        add_help=False,
    )
    parser.add_argument("--root", type=Path, default=None, help="Site root (default: current directory).")
    parser.add_argument("--config", type=Path, default=None, help="Site configuration file (default: <root>/sitealign.json).")
    parser.add_argument("--log-level", default=None, help="Logging level, overrides debug.level.")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    parser.add_argument("-h", "--help", action="store_true", help="Show help and exit.")
    parser.add_argument("command", nargs="?", default=None)
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for running sitealign from the command line."""
    parser = build_parser()
    try:
        options = parser.parse_args(sys.argv[1:] if argv is None else argv)
    except SystemExit:
        return 2

    site_root = PathUtils.get_site_root(options.root)
    config_manager.reset()
    config_file = options.config.resolve() if options.config else PathUtils.get_site_config_file(site_root)
    config_manager.load_overrides(config_file)

    configure_logger(options.log_level or config_manager.get_nested("debug.level", "WARNING"))
    logger.debug("Site root: %s", site_root)

    register_all_commands()

    if options.help or not options.command:
        print(get_help_text())
        return 0 if options.help else 1

    ctx = AlignContext(root=site_root, config=config_manager, show_progress=not options.no_progress)
    try:
        return dispatch(options.command, list(options.args), ctx)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
