# src/reconciler/controllers/reconcile_controller.py
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm.auto import tqdm

from reconciler.model import DocumentSummary
from reconciler.pipeline import DocumentState, Pipeline, ReconcileContext
from sitealign.core.utils.run_timers import RunTimers
from sitealign.model import RunProgress, RunRecord

logger = logging.getLogger(__name__)


class ReconcileController:
    """
    Drives one pipeline over an ordered set of documents.

    Documents are processed sequentially and independently; a document is
    written back only when its text changed and the run is not a dry run.
    """

    def __init__(
            self,
            pipeline: Pipeline,
            ctx: ReconcileContext,
            public_dir: Path,
            site_root: Optional[Path] = None,
            dry_run: bool = False,
            show_progress: bool = True,
    ):
        self.pipeline = pipeline
        self.ctx = ctx
        self.public_dir = public_dir
        self.site_root = site_root or public_dir.parent
        self.dry_run = dry_run
        self.show_progress = show_progress
        self.summaries: List[DocumentSummary] = []

    def _display_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.site_root).as_posix()
        except ValueError:
            return path.as_posix()

    def process_document(self, path: Path) -> DocumentSummary:
        rel_path = path.relative_to(self.public_dir).as_posix()
        display = self._display_path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Could not read %s: %s", display, e)
            return DocumentSummary(path=display, warnings=[f"Unreadable document: {e}"])

        state = self.pipeline.run(DocumentState.load(rel_path, text, display), self.ctx)
        summary = state.summary
        if state.changed:
            summary.changed = True
            if self.dry_run:
                logger.debug("Dry run, not writing %s", display)
            else:
                path.write_text(state.html, encoding="utf-8")
                logger.debug("Wrote %s", display)
        return summary

    def run(self, documents: Sequence[Path], errors: Optional[List[str]] = None) -> RunRecord:
        """Processes `documents` in order and aggregates the outcome into a RunRecord."""
        timers = RunTimers()
        timers.start()
        self.summaries = []

        changes: List[str] = []
        warnings: List[str] = []
        total_fixes = 0

        progress = tqdm(
            documents,
            desc=self.pipeline.name,
            unit="doc",
            disable=not self.show_progress,
            leave=False,
        )
        for path in progress:
            summary = self.process_document(path)
            self.summaries.append(summary)
            if summary.changed:
                changes.extend(f"{summary.path}: {fix}" for fix in summary.fixes)
                total_fixes += len(summary.fixes)
            warnings.extend(f"{summary.path}: {warning}" for warning in summary.warnings)

        timers.stop()
        record = RunRecord(
            duration_ms=timers.duration_ms,
            progress=RunProgress(
                total_files=len(documents),
                files_changed=sum(1 for s in self.summaries if s.changed),
                total_fixes=total_fixes,
                warnings=len(warnings),
            ),
            changes=changes,
            warnings=warnings,
            errors=list(errors or []),
        )
        logger.info(
            "%s: %d document(s), %d changed, %d warning(s) in %dms",
            self.pipeline.name, len(documents), record.progress.files_changed, len(warnings), record.duration_ms,
        )
        return record
