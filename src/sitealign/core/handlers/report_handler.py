# src/sitealign/core/handlers/report_handler.py
import logging
from typing import List

import pandas as pd

from reconciler.controllers.report_controller import ReportController
from reconciler.errors import ContentInputError
from sitealign.core.context.align_context import AlignContext
from sitealign.core.services.batch_service import build_settings
from sitealign.core.services.content_input_service import ContentInputService
from sitealign.core.utils.path_utils import PathUtils
from sitealign.core.utils.run_timers import format_duration

logger = logging.getLogger(__name__)

COMMAND_HIERARCHY = None

report_help_text = """
  report              Read-only state of alignment: per-document checks and
                      the last recorded run of every command.
""".strip()


def _format_check(passed: bool, label: str, detail: str) -> str:
    icon = "✅" if passed else "❌"
    return f"  {icon} {label}{f' ({detail})' if not passed and detail else ''}"


def _print_checks(checks: pd.DataFrame) -> None:
    for document, rows in checks.groupby("document", sort=False):
        print(f"\n{document}")
        for row in rows.itertuples():
            print(_format_check(row.passed, row.label, row.detail))


def _print_sections(sections: dict, table: pd.DataFrame) -> None:
    print("\nRecent alignment actions")
    if table.empty:
        print("  No command has recorded a run yet.")
        return
    display = table.copy()
    display["duration"] = display["duration_ms"].map(lambda ms: format_duration(ms) if pd.notna(ms) else "n/a")
    print(display.drop(columns=["duration_ms"]).fillna("-").to_string(index=False))

    for command in table["command"]:
        section = sections[command]
        changes = section.get("changes") or []
        print(f"\n{command} @ {section.get('timestamp', 'unknown')}")
        if not changes:
            print("  • No recorded changes")
        for change in changes:
            print(f"  • {change}")
        for warning in section.get("warnings") or []:
            print(f"    - {warning}")


def handle_report(args: List[str], ctx: AlignContext) -> int:
    """Prints the state-of-alignment report. Never modifies documents or the run log."""
    settings = build_settings(ctx.config)

    faq_count = None
    try:
        faq_count = len(ContentInputService(ctx.root).load_faq_bank(ctx.path_for("faq_bank", "data/faq-bank.json")))
    except ContentInputError as e:
        logger.warning("FAQ count check disabled: %s", e)

    controller = ReportController(settings, faq_count=faq_count)
    public_dir = ctx.public_dir
    documents = PathUtils.list_documents(public_dir)

    print("State of Alignment")
    print("===================")
    checks = controller.check_site(public_dir, documents, site_root=ctx.root)
    if checks.empty:
        print(f"No documents found under {public_dir}.")
    else:
        _print_checks(checks)
        failed = int((~checks["passed"].astype(bool)).sum())
        print(f"\n{len(documents)} document(s), {len(checks)} check(s), {failed} failed.")

    sections = ctx.run_log_manager.load()
    _print_sections(sections, controller.sections_frame(sections))
    return 0
