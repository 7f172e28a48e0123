# src/sitealign/core/handlers/config_handler.py
from typing import Any, Dict, List, Optional

from sitealign.core.context.align_context import AlignContext
from sitealign.core.services.json_service import to_json

COMMAND_HIERARCHY: Dict[str, Optional[Dict[str, Any]]] = {
    "list": None,
    "get": None,
}

config_help_text = """
  config list         Show the effective configuration (defaults merged with
                      the site's sitealign.json) as JSON.
  config get <key>    Show one value, e.g. 'config get site.origin'.
""".strip()

USAGE = """
Usage:
  config list                Show the effective configuration as JSON.
  config get <key>           Show a single value (dotted path, e.g. limits.title_max).
"""


def handle_config(args: List[str], ctx: AlignContext) -> int:
    """Handles the 'config' command for viewing the effective configuration."""
    if not args:
        print(USAGE)
        return 1

    command = args[0]

    if command == "list":
        print(to_json(ctx.config.get_all(), indent=2))
        return 0

    if command == "get":
        if len(args) < 2:
            print("Usage: config get <key>")
            return 1
        key_path = args[1]
        value = ctx.config.get_nested(key_path)
        if value is None:
            print(f"❌ Unknown config key '{key_path}'.")
            return 1
        if isinstance(value, (dict, list)):
            print(to_json(value, indent=2))
        else:
            print(value)
        return 0

    print(f"Unknown command: 'config {command}'.")
    return 1
