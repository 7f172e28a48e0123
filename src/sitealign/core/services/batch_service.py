# src/sitealign/core/services/batch_service.py
import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from reconciler.controllers.reconcile_controller import ReconcileController
from reconciler.errors import ContentInputError
from reconciler.model import ReconcileSettings
from reconciler.pipeline import Pipeline, ReconcileContext
from sitealign.core.context.align_context import AlignContext
from sitealign.core.managers.config_manager import ConfigManager
from sitealign.core.services.content_input_service import ContentInputService
from sitealign.core.utils.path_utils import PathUtils
from sitealign.core.utils.run_timers import format_duration
from sitealign.model import RunRecord

logger = logging.getLogger(__name__)

# Content inputs each pipeline consumes
PIPELINE_INPUTS = {
    "enforce": ("faq_bank", "kg_template"),
    "assets": (),
    "inject": ("faq_bank", "disclosure"),
}


def build_settings(config: ConfigManager) -> ReconcileSettings:
    """Flattens the nested configuration into the reconciler's settings model."""
    get = config.get_nested
    return ReconcileSettings(
        origin=get("site.origin", "https://example.com"),
        site_name=get("site.name", ""),
        language=get("site.language", "en-US"),
        default_title=get("defaults.title", get("site.name", "")),
        default_description=get("defaults.description", ""),
        fallback_image=get("images.fallback"),
        og_image_alt=get("images.og_alt", ""),
        verify_assets=bool(get("images.verify_assets", False)),
        misspelled_origins=get("site.misspelled_origins", []),
        icons=get("icons", []),
        title_min=get("limits.title_min", 35),
        title_max=get("limits.title_max", 65),
        description_max=get("limits.description_max", 165),
        derived_description=get("limits.derived_description", 155),
        article_type=get("graph.article_type", "BlogPosting"),
        howto_name=get("graph.howto_name", "How-to steps"),
        summary_selector=get("graph.summary_selector", ".tldr"),
        site_script=get("markup.site_script", "/site.js"),
    )


def asset_checker(public_dir: Path) -> Callable[[str], bool]:
    def exists(site_path: str) -> bool:
        candidate = PathUtils.public_asset_path(public_dir, site_path)
        return bool(candidate and candidate.is_file())
    return exists


def build_context(
        pipeline_name: str,
        ctx: AlignContext,
        today: Optional[Callable[[], str]] = None,
) -> Tuple[ReconcileContext, List[str]]:
    """
    Loads the content inputs the pipeline needs. An unusable input is
    reported as a process-level error and its feature is disabled.
    """
    service = ContentInputService(ctx.root)
    errors: List[str] = []
    loaded = {}
    loaders = {
        "faq_bank": (service.load_faq_bank, "data/faq-bank.json"),
        "kg_template": (service.load_template, "data/templates/kg-template.jsonld"),
        "disclosure": (service.load_disclosure, "docs/disclosure.txt"),
    }
    for key in PIPELINE_INPUTS.get(pipeline_name, ()):
        loader, default = loaders[key]
        try:
            loaded[key] = loader(ctx.path_for(key, default))
        except ContentInputError as e:
            logger.error("%s", e)
            errors.append(str(e))

    reconcile_ctx = ReconcileContext(
        build_settings(ctx.config),
        faq_entries=loaded.get("faq_bank"),
        template=loaded.get("kg_template"),
        disclosure=loaded.get("disclosure"),
        asset_exists=asset_checker(ctx.public_dir),
        today=today,
    )
    return reconcile_ctx, errors


def parse_batch_args(command: str, args: List[str]) -> Optional[argparse.Namespace]:
    parser = argparse.ArgumentParser(prog=f"sitealign {command}")
    parser.add_argument("--dry-run", action="store_true", help="Compute fixes without writing any file.")
    try:
        return parser.parse_args(args)
    except SystemExit:
        return None


def print_record(command: str, record: RunRecord, dry_run: bool = False) -> None:
    label = f"{command} (dry run)" if dry_run else command
    if record.changes:
        print(f"{label}:")
        for change in record.changes:
            print(f"  • {change}")
    else:
        print(f"{label}: no changes needed.")

    p = record.progress
    print(
        f"{command} summary: processed {p.total_files} file(s) in {format_duration(record.duration_ms)}, "
        f"{p.files_changed} file(s) updated, {p.total_fixes} fix(es), {p.warnings} warning(s)."
    )

    if record.warnings:
        print("Warnings:", file=sys.stderr)
        for warning in record.warnings:
            print(f"  • {warning}", file=sys.stderr)
    if record.errors:
        print("Errors:", file=sys.stderr)
        for error in record.errors:
            print(f"  ❌ {error}", file=sys.stderr)


def run_batch(
        pipeline: Pipeline,
        args: List[str],
        ctx: AlignContext,
        today: Optional[Callable[[], str]] = None,
) -> int:
    """
    Shared body of the enforce/assets/inject commands: load inputs, run the
    pipeline over every document, record the run log section, print results.
    Returns 0 only when neither warnings nor errors remain.
    """
    parsed = parse_batch_args(pipeline.name, args)
    if parsed is None:
        return 1

    run_log = ctx.run_log_manager
    run_log.load()

    reconcile_ctx, errors = build_context(pipeline.name, ctx, today=today)
    documents = PathUtils.list_documents(ctx.public_dir)
    if not documents:
        logger.warning("No HTML documents found under %s", ctx.public_dir)

    controller = ReconcileController(
        pipeline,
        reconcile_ctx,
        ctx.public_dir,
        site_root=ctx.root,
        dry_run=parsed.dry_run,
        show_progress=ctx.show_progress,
    )
    record = controller.run(documents, errors=errors)

    if not parsed.dry_run:
        run_log.record(pipeline.name, record)
        try:
            run_log.flush()
        except OSError as e:
            logger.error("Could not write run log %s: %s", run_log.log_path, e)
            record.errors.append(f"Run log not written: {e}")

    print_record(pipeline.name, record, dry_run=parsed.dry_run)
    return record.exit_code
