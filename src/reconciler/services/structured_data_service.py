# src/reconciler/services/structured_data_service.py
import json
import logging
import re
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from reconciler.dom.text import extract_care_steps
from reconciler.model import CanonicalRecord, FaqEntry, GraphTemplate, PrimaryImage
from sitealign.core.services.json_service import to_json

logger = logging.getLogger(__name__)

SCHEMA_CONTEXT = "https://schema.org"
SUMMARY_RE = re.compile(
    r"""(?:\bclass\s*=\s*["'][^"']*\btldr\b[^"']*["']|\bdata-speak\s*=\s*["']tldr["'])""",
    re.IGNORECASE,
)
H1_RE = re.compile(r"<h1\b", re.IGNORECASE)

PriorDates = Dict[str, str]


def _dimension(value: Optional[str]) -> Any:
    if value and value.isdigit():
        return int(value)
    return value


class StructuredDataBuilder:
    """
    Builds the JSON-LD graph of a document from the knowledge-graph template,
    in-page signals and the dates of the previously emitted graph.

    Node identity is a function of canonical URL and node role only, so an
    unchanged document always serializes to the same text.
    """

    def __init__(
            self,
            origin: str,
            site_name: str,
            language: str = "en-US",
            article_type: str = "BlogPosting",
            howto_name: str = "How-to steps",
            summary_selector: str = ".tldr",
            today: Optional[Callable[[], str]] = None,
    ):
        self.origin = origin.rstrip("/")
        self.site_name = site_name
        self.language = language
        self.article_type = article_type
        self.howto_name = howto_name
        self.summary_selector = summary_selector
        self.today = today or (lambda: date.today().isoformat())

    @property
    def org_id(self) -> str:
        return f"{self.origin}/#org"

    @property
    def website_id(self) -> str:
        return f"{self.origin}/#website"

    # --- Cross-run state ---

    @staticmethod
    def extract_existing_dates(blocks: Sequence[str]) -> Tuple[PriorDates, int]:
        """
        Collects datePublished/dateModified from previously emitted blocks.
        First value found wins. Returns (dates, number_of_unparsable_blocks).
        """
        dates: PriorDates = {}
        invalid = 0
        for raw in blocks:
            try:
                parsed = json.loads(raw.strip())
            except ValueError:
                invalid += 1
                continue
            if isinstance(parsed, list):
                nodes = parsed
            elif isinstance(parsed, dict) and isinstance(parsed.get("@graph"), list):
                nodes = parsed["@graph"]
            else:
                nodes = [parsed]
            for node in nodes:
                if not isinstance(node, dict):
                    continue
                for key in ("datePublished", "dateModified"):
                    if key not in dates and isinstance(node.get(key), str):
                        dates[key] = node[key]
        return dates, invalid

    def resolve_dates(self, prior: PriorDates, explicit: Optional[str]) -> Tuple[str, str]:
        """
        datePublished: prior graph value, else the page's explicit timestamp,
        else today. dateModified: explicit timestamp, else datePublished.
        """
        published = prior.get("datePublished") or explicit or self.today()
        modified = explicit or published
        return published, modified

    # --- Node builders ---

    def _organization(self, template: GraphTemplate) -> Dict[str, Any]:
        node = template.node("Organization") or {"@type": "Organization", "name": self.site_name}
        node.update({"@id": self.org_id, "url": f"{self.origin}/"})
        return node

    def _website(self, template: GraphTemplate) -> Dict[str, Any]:
        node = template.node("WebSite") or {"@type": "WebSite"}
        node.update({
            "@id": self.website_id,
            "url": f"{self.origin}/",
            "name": self.site_name,
            "inLanguage": self.language,
            "publisher": {"@id": self.org_id},
        })
        return node

    def _breadcrumbs(self, template: GraphTemplate, record: CanonicalRecord) -> Dict[str, Any]:
        node = template.node("BreadcrumbList") or {"@type": "BreadcrumbList"}
        node.update({
            "@id": f"{record.canonical_url}#breadcrumbs",
            "itemListElement": [crumb.to_node() for crumb in record.breadcrumbs],
        })
        return node

    def _webpage(
            self,
            template: GraphTemplate,
            record: CanonicalRecord,
            title: str,
            description: str,
            dates: Tuple[str, str],
            image_id: Optional[str],
    ) -> Dict[str, Any]:
        canonical = record.canonical_url
        node = template.node("WebPage") or {"@type": "WebPage"}
        node.update({
            "@id": f"{canonical}#webpage",
            "url": canonical,
            "name": title,
            "inLanguage": self.language,
            "description": description,
            "datePublished": dates[0],
            "dateModified": dates[1],
            "isPartOf": {"@id": self.website_id},
            "breadcrumb": {"@id": f"{canonical}#breadcrumbs"},
        })
        if image_id:
            node["primaryImageOfPage"] = {"@id": image_id}
        return node

    @staticmethod
    def _image(record: CanonicalRecord, image: PrimaryImage) -> Dict[str, Any]:
        node: Dict[str, Any] = {
            "@type": "ImageObject",
            "@id": f"{record.canonical_url}#primaryimage",
            "url": image.url,
            "contentUrl": image.url,
            "caption": image.caption,
        }
        if image.width:
            node["width"] = _dimension(image.width)
        if image.height:
            node["height"] = _dimension(image.height)
        return node

    def _article(
            self,
            record: CanonicalRecord,
            title: str,
            description: str,
            dates: Tuple[str, str],
            image_id: Optional[str],
    ) -> Dict[str, Any]:
        node: Dict[str, Any] = {
            "@type": self.article_type,
            "@id": f"{record.canonical_url}#blog",
            "headline": title,
            "description": description,
            "datePublished": dates[0],
            "dateModified": dates[1],
            "inLanguage": self.language,
            "mainEntityOfPage": {"@id": f"{record.canonical_url}#webpage"},
            "author": {"@id": self.org_id, "@type": "Organization", "name": self.site_name},
            "publisher": {"@id": self.org_id},
        }
        if image_id:
            node["image"] = {"@id": image_id}
        return node

    def _speakable(self, text: str, record: CanonicalRecord) -> Optional[Dict[str, Any]]:
        if not (SUMMARY_RE.search(text) and H1_RE.search(text)):
            return None
        return {
            "@type": "SpeakableSpecification",
            "@id": f"{record.canonical_url}#speakable",
            "cssSelector": [self.summary_selector, "h1"],
        }

    @staticmethod
    def _faq(record: CanonicalRecord, faq_entries: Sequence[FaqEntry]) -> Optional[Dict[str, Any]]:
        if not record.is_root or not faq_entries:
            return None
        return {
            "@type": "FAQPage",
            "@id": f"{record.canonical_url}#faq",
            "mainEntity": [
                {
                    "@type": "Question",
                    "name": entry.question,
                    "acceptedAnswer": {"@type": "Answer", "text": entry.answer},
                }
                for entry in faq_entries
            ],
        }

    def _howto(self, text: str, record: CanonicalRecord) -> Optional[Dict[str, Any]]:
        steps = extract_care_steps(text)
        if not steps:
            return None
        return {
            "@type": "HowTo",
            "@id": f"{record.canonical_url}#care",
            "name": self.howto_name,
            "step": [
                {"@type": "HowToStep", "position": position, "text": step}
                for position, step in enumerate(steps, start=1)
            ],
        }

    # --- Public API ---

    def build_graph(
            self,
            text: str,
            record: CanonicalRecord,
            title: str,
            description: str,
            faq_entries: Sequence[FaqEntry],
            template: GraphTemplate,
            prior_dates: Optional[PriorDates] = None,
            explicit_date: Optional[str] = None,
            primary_image: Optional[PrimaryImage] = None,
    ) -> Dict[str, Any]:
        """Assembles the full `{"@context", "@graph"}` document for one page."""
        dates = self.resolve_dates(prior_dates or {}, explicit_date)
        image_id = f"{record.canonical_url}#primaryimage" if primary_image else None

        nodes: List[Optional[Dict[str, Any]]] = [
            self._organization(template),
            self._website(template),
            self._breadcrumbs(template, record),
            self._webpage(template, record, title, description, dates, image_id),
            self._image(record, primary_image) if primary_image else None,
            self._article(record, title, description, dates, image_id),
            self._speakable(text, record),
            self._faq(record, faq_entries),
            self._howto(text, record),
        ]
        return {"@context": SCHEMA_CONTEXT, "@graph": [node for node in nodes if node]}

    @staticmethod
    def serialize(graph: Dict[str, Any]) -> str:
        """Two-space indented JSON, safe to embed inside a <script> element."""
        return to_json(graph, indent=2).replace("</", "<\\/")
