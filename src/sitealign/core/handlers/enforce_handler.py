# src/sitealign/core/handlers/enforce_handler.py
from typing import List

from reconciler.pipeline import ENFORCE_PIPELINE
from sitealign.core.context.align_context import AlignContext
from sitealign.core.services.batch_service import run_batch

COMMAND_HIERARCHY = None

enforce_help_text = """
  enforce [--dry-run]
                      Full reconcile pass: domain typos, canonical, title and
                      description checks, robots, Open Graph/Twitter, JSON-LD
                      graph, progress markup, site script and image loading.
""".strip()


def handle_enforce(args: List[str], ctx: AlignContext) -> int:
    """Runs the full reconcile pipeline over every document of the site."""
    return run_batch(ENFORCE_PIPELINE, args, ctx)
