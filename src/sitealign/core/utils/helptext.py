# src/sitealign/core/utils/helptext.py
from sitealign.core.command_registry import COMMAND_HELP_TEXTS

# The static header part of the help text
HEADER_HELP_TEXT = """
🧭 sitealign - Help

Keeps canonical URLs, meta/social tags, JSON-LD graphs and markup hooks of a
static HTML site aligned. Every command is idempotent: a second run over an
aligned site reports no changes.

---
USAGE
---
  sitealign [--root DIR] [--config FILE] [--log-level LEVEL] [--no-progress] <command> [args]

  Exit code 0 when no warnings or errors remain, 1 otherwise.

---
COMMANDS
---
  help                Show this help text.
""".strip()


def get_help_text() -> str:
    """
    Dynamically assembles the full help text from the header and all
    discovered help text fragments from the command handlers.
    """
    full_help_parts = [HEADER_HELP_TEXT]

    for command_name in sorted(COMMAND_HELP_TEXTS.keys()):
        full_help_parts.append(COMMAND_HELP_TEXTS[command_name])

    return "\n\n".join(full_help_parts)
