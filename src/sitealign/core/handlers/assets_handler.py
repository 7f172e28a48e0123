# src/sitealign/core/handlers/assets_handler.py
from typing import List

from reconciler.pipeline import ASSETS_PIPELINE
from sitealign.core.context.align_context import AlignContext
from sitealign.core.services.batch_service import run_batch

COMMAND_HIERARCHY = None

assets_help_text = """
  assets [--dry-run]
                      Head-assets pass: icons that exist on disk, canonical,
                      missing robots/description, Open Graph/Twitter tags,
                      image loading attributes and the site script.
""".strip()


def handle_assets(args: List[str], ctx: AlignContext) -> int:
    return run_batch(ASSETS_PIPELINE, args, ctx)
