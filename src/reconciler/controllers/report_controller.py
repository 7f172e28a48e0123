# src/reconciler/controllers/report_controller.py
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel

from reconciler.dom import head as head_dom
from reconciler.dom import markup as markup_dom
from reconciler.dom.upsert import json_ld_blocks
from reconciler.model import ReconcileSettings, TagPattern
from reconciler.services.canonical_service import CanonicalService

logger = logging.getLogger(__name__)

SECTION_COLUMNS = ["command", "timestamp", "files", "updated", "fixes", "warnings", "errors", "duration_ms"]
SUMMARY_RE = re.compile(r"""\bclass\s*=\s*["'][^"']*\btldr\b""", re.IGNORECASE)


class DocumentCheck(BaseModel):
    document: str
    label: str
    passed: bool
    detail: str = ""


class ReportController:
    """
    Read-only state-of-alignment report: per-document checks plus a table of
    the run log sections. Never writes anything.
    """

    def __init__(self, settings: ReconcileSettings, faq_count: Optional[int] = None):
        self.settings = settings
        self.faq_count = faq_count
        self.canonical = CanonicalService(settings.origin)

    # --- Per-document checks ---

    def check_document(self, rel_path: str, text: str, display_path: Optional[str] = None) -> List[DocumentCheck]:
        name = display_path or rel_path
        region = head_dom.locate_head(text)
        inner = region.inner if region else ""
        s = self.settings
        checks: List[DocumentCheck] = []

        def add(label: str, passed: bool, detail: str = "") -> None:
            checks.append(DocumentCheck(document=name, label=label, passed=passed, detail="" if passed else detail))

        title = head_dom.read_title(inner)
        add(
            f"Title between {s.title_min} and {s.title_max} characters",
            bool(title) and s.title_min <= len(title) <= s.title_max,
            f"length {len(title)}" if title else "missing",
        )

        description = head_dom.read_meta_content(inner, TagPattern(kind="meta", attrs=("name",), value="description"))
        add(
            "Meta description present",
            bool(description) and len(description) <= s.description_max,
            f"length {len(description)}" if description else "missing",
        )

        expected = self.canonical.compute_canonical(rel_path)
        canonical = head_dom.read_link_href(inner, "canonical")
        add("Canonical matches expected URL", canonical == expected, canonical or "missing")

        robots = head_dom.read_meta_content(inner, TagPattern(kind="meta", attrs=("name",), value="robots"))
        add(
            "Robots meta includes index,follow",
            bool(robots) and "index" in robots and "follow" in robots,
            robots or "missing",
        )

        add("JSON-LD block present", bool(json_ld_blocks(inner)), "missing")
        add("Disclosure block synced", bool(markup_dom.DISCLOSURE_RE.search(text)), "missing")
        add("Progress bar markup present", markup_dom.has_progress_markup(text), "missing")
        add("Site script referenced", markup_dom.has_site_script(text, s.site_script), "missing")

        if rel_path == "index.html":
            add("TL;DR section detected", bool(SUMMARY_RE.search(text)), "missing")
        if rel_path.endswith("index.html") and self.faq_count is not None:
            has_section = bool(markup_dom.FAQ_SECTION_RE.search(text))
            found = markup_dom.count_faq_details(text)
            add(
                f"FAQ count matches data ({self.faq_count})",
                has_section and found == self.faq_count,
                f"found {found}" if has_section else "missing section",
            )
        return checks

    def check_site(self, public_dir: Path, documents: Sequence[Path], site_root: Optional[Path] = None) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []
        for path in documents:
            rel_path = path.relative_to(public_dir).as_posix()
            display = path.relative_to(site_root).as_posix() if site_root else rel_path
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable document %s: %s", display, e)
                continue
            rows.extend(check.model_dump() for check in self.check_document(rel_path, text, display))
        return pd.DataFrame(rows, columns=["document", "label", "passed", "detail"])

    # --- Run log ---

    @staticmethod
    def sections_frame(sections: Dict[str, Any]) -> pd.DataFrame:
        """One row per recorded command section of the run log."""
        rows = []
        for command in sorted(sections):
            section = sections[command]
            if not isinstance(section, dict):
                continue
            progress = section.get("progress") or {}
            rows.append({
                "command": command,
                "timestamp": section.get("timestamp", "unknown"),
                "files": progress.get("totalFiles"),
                "updated": progress.get("filesChanged"),
                "fixes": progress.get("totalFixes"),
                "warnings": progress.get("warnings", len(section.get("warnings") or [])),
                "errors": len(section.get("errors") or []),
                "duration_ms": section.get("durationMs"),
            })
        return pd.DataFrame(rows, columns=SECTION_COLUMNS)
