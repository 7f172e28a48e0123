# src/reconciler/services/canonical_service.py
import re
from typing import List

from reconciler.model import BreadcrumbItem, CanonicalRecord

INDEX_FILE = "index.html"
WORD_SEPARATORS_RE = re.compile(r"[-_]+")


def normalize_rel_path(rel_path: str) -> str:
    """Forward slashes, no leading './' or '/'."""
    path = rel_path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def title_case(segment: str) -> str:
    """'care-and-cleaning' -> 'Care And Cleaning'."""
    pieces = [p for p in WORD_SEPARATORS_RE.split(segment) if p]
    return " ".join(p[:1].upper() + p[1:] for p in pieces)


class CanonicalService:
    """
    Derives canonical URLs and breadcrumb chains from site-relative paths.
    Pure with respect to the path: document content is never consulted.
    """

    def __init__(self, origin: str):
        self.origin = origin.rstrip("/")

    def compute_canonical(self, rel_path: str) -> str:
        rel = normalize_rel_path(rel_path)
        if rel == INDEX_FILE:
            return f"{self.origin}/"
        if rel.endswith(f"/{INDEX_FILE}"):
            return f"{self.origin}/{rel[:-len(INDEX_FILE)]}"
        return f"{self.origin}/{rel}"

    def build_breadcrumbs(self, rel_path: str) -> List[BreadcrumbItem]:
        rel = normalize_rel_path(rel_path)
        if rel == INDEX_FILE or rel.endswith(f"/{INDEX_FILE}"):
            rel = rel[:-len(INDEX_FILE)]
        segments = [s for s in rel.split("/") if s]

        items = [BreadcrumbItem(position=1, name="Home", item=f"{self.origin}/")]
        accumulated = ""
        for idx, segment in enumerate(segments):
            is_last = idx == len(segments) - 1
            accumulated += segment
            if not is_last or not segment.endswith(".html"):
                accumulated += "/"
            items.append(BreadcrumbItem(
                position=len(items) + 1,
                name=title_case(re.sub(r"\.html$", "", segment)),
                item=f"{self.origin}/{accumulated}",
            ))
        return items

    def derive(self, rel_path: str) -> CanonicalRecord:
        rel = normalize_rel_path(rel_path)
        return CanonicalRecord(
            rel_path=rel,
            canonical_url=self.compute_canonical(rel),
            breadcrumbs=self.build_breadcrumbs(rel),
        )
