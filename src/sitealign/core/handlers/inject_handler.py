# src/sitealign/core/handlers/inject_handler.py
from typing import List

from reconciler.pipeline import INJECT_PIPELINE
from sitealign.core.context.align_context import AlignContext
from sitealign.core.services.batch_service import run_batch

COMMAND_HIERARCHY = None

inject_help_text = """
  inject [--dry-run]
                      Upserts the disclosure block on every document and syncs
                      the FAQ section of index pages from the FAQ bank.
""".strip()


def handle_inject(args: List[str], ctx: AlignContext) -> int:
    return run_batch(INJECT_PIPELINE, args, ctx)
