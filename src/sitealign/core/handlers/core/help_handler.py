# src/sitealign/core/handlers/core/help_handler.py
from sitealign.core.context.align_context import AlignContext
from sitealign.core.utils.helptext import get_help_text


def handle_help(_args, _ctx: AlignContext) -> int:
    print(get_help_text())
    return 0
