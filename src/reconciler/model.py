# src/reconciler/model.py
import copy
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ATTR_RE = re.compile(r"""([a-zA-Z_:][\w:.-]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
# One unit of a start tag body: a quoted attribute value or any other character but ">".
TAG_BODY = r"""(?:[^>"']|"[^"]*"|'[^']*')"""
QUOTED_VALUE_RE = re.compile(r""""[^"]*"|'[^']*'""")
BARE_DATA_HERO_RE = re.compile(r"(?<![\w-])data-hero(?![\w-])", re.IGNORECASE)
HERO_VALUE_ATTRS = ("class", "id", "data-role", "data-hero")


def parse_attributes(markup: str) -> Dict[str, str]:
    """Returns the quoted attributes of a single start tag, lower-cased keys, first occurrence wins."""
    attrs: Dict[str, str] = {}
    for name, double, single in ATTR_RE.findall(markup):
        key = name.lower()
        if key not in attrs:
            attrs[key] = double if double or not single else single
    return attrs


class HeadRegion(BaseModel):
    """
    Located <head> block of a document.
    `start`/`end` span the full block (open tag to close tag inclusive).
    """
    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    open_tag: str
    inner: str
    close_tag: str = "</head>"

    @property
    def inner_start(self) -> int:
        return self.start + len(self.open_tag)

    @property
    def inner_end(self) -> int:
        return self.end - len(self.close_tag)


class TagPattern(BaseModel):
    """
    (element kind, matching attribute(s), matching value) triple.

    Several attributes may be listed when a tag is found under either name,
    e.g. Twitter cards written as `name=` or `property=`. The first attribute
    is the one used when a new tag has to be built.
    """
    model_config = ConfigDict(frozen=True)

    kind: str
    attrs: Tuple[str, ...]
    value: str

    @property
    def regex(self) -> "re.Pattern[str]":
        attr_alt = "|".join(re.escape(a) for a in self.attrs)
        return re.compile(
            rf"""(^[ \t]*)?<{re.escape(self.kind)}\b{TAG_BODY}*?(?<![\w-])(?:{attr_alt})\s*=\s*["']{re.escape(self.value)}["']{TAG_BODY}*>""",
            re.IGNORECASE | re.MULTILINE,
        )

    def find(self, inner: str) -> Optional["re.Match[str]"]:
        return self.regex.search(inner)

    def count(self, inner: str) -> int:
        return len(self.regex.findall(inner))

    def matched_attr(self, inner: str) -> Optional[str]:
        """Returns which of the pattern's attributes the first existing tag uses."""
        match = self.find(inner)
        if not match:
            return None
        found = parse_attributes(match.group(0))
        for attr in self.attrs:
            if found.get(attr.lower(), "").lower() == self.value.lower():
                return attr
        return None

    def describe(self) -> str:
        return f'<{self.kind} {self.attrs[0]}="{self.value}">'


class BreadcrumbItem(BaseModel):
    position: int
    name: str
    item: str

    def to_node(self) -> Dict[str, object]:
        return {
            "@type": "ListItem",
            "position": self.position,
            "name": self.name,
            "item": self.item,
        }


class CanonicalRecord(BaseModel):
    """Derived, never stored: canonical URL and breadcrumb chain of a path."""
    model_config = ConfigDict(frozen=True)

    rel_path: str
    canonical_url: str
    breadcrumbs: List[BreadcrumbItem] = Field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.rel_path == "index.html"


class ImageTag(BaseModel):
    """A single <img> occurrence inside a document body."""
    markup: str
    index: int
    attrs: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_markup(cls, markup: str, index: int) -> "ImageTag":
        return cls(markup=markup, index=index, attrs=parse_attributes(markup))

    @property
    def src(self) -> Optional[str]: return self.attrs.get("src") or None

    @property
    def alt(self) -> str: return self.attrs.get("alt", "")

    @property
    def width(self) -> Optional[str]: return self.attrs.get("width") or None

    @property
    def height(self) -> Optional[str]: return self.attrs.get("height") or None

    @property
    def is_hero(self) -> bool:
        """
        Hero signal: class/id/data-role/data-hero containing 'hero', an explicit
        data-hero marker (anything but "false") or loading="eager".
        """
        attrs = self.attrs
        if any("hero" in attrs.get(name, "").lower() for name in HERO_VALUE_ATTRS):
            return True
        if attrs.get("loading", "").lower() == "eager":
            return True
        if "data-hero" in attrs:
            return attrs["data-hero"].strip().lower() != "false"
        return bool(BARE_DATA_HERO_RE.search(QUOTED_VALUE_RE.sub('""', self.markup)))

    @property
    def role(self) -> str:
        return "hero" if self.is_hero else "ordinary"

    @property
    def has_size_hints(self) -> bool:
        return "width" in self.attrs and "height" in self.attrs


class PrimaryImage(BaseModel):
    """Representative image of a document, used for social previews and the ImageObject node."""
    url: str
    source: str  # 'preload', 'hero', 'first' or 'fallback'
    caption: str = ""
    width: Optional[str] = None
    height: Optional[str] = None


class FaqEntry(BaseModel):
    """One question/answer pair of the FAQ bank (`{"q": ..., "a": ...}`)."""
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(alias="q")
    answer: str = Field(alias="a")


class GraphTemplate(BaseModel):
    """Knowledge-graph template: default nodes keyed by their `@type`."""
    nodes: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_document(cls, data: Any) -> "GraphTemplate":
        if isinstance(data, dict):
            data = data.get("@graph", [data])
        if not isinstance(data, list):
            raise ValueError("template must be a JSON-LD object or a list of nodes")
        return cls(nodes=[node for node in data if isinstance(node, dict)])

    def node(self, type_name: str) -> Dict[str, Any]:
        """Deep copy of the first node of the given type, {} when the template has none."""
        for node in self.nodes:
            node_type = node.get("@type")
            types = node_type if isinstance(node_type, list) else [node_type]
            if type_name in types:
                return copy.deepcopy(node)
        return {}


class IconSpec(BaseModel):
    """A favicon / touch-icon link, emitted only when `href` exists on disk."""
    model_config = ConfigDict(populate_by_name=True)

    rel: str
    href: str
    sizes: Optional[str] = None
    type_: Optional[str] = Field(default=None, alias="type")

    def describe(self) -> str:
        return f"{self.rel} {self.sizes}" if self.sizes else self.rel


class ReconcileSettings(BaseModel):
    """Site-wide inputs of every pipeline, flattened from the configuration."""
    origin: str
    site_name: str
    language: str = "en-US"
    default_title: str
    default_description: str
    fallback_image: Optional[str] = None
    og_image_alt: str = ""
    verify_assets: bool = False
    misspelled_origins: List[str] = Field(default_factory=list)
    icons: List[IconSpec] = Field(default_factory=list)
    title_min: int = 35
    title_max: int = 65
    description_max: int = 165
    derived_description: int = 155
    article_type: str = "BlogPosting"
    howto_name: str = "How-to steps"
    summary_selector: str = ".tldr"
    site_script: str = "/site.js"

    @field_validator("origin")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class DocumentSummary(BaseModel):
    """Per-document outcome of one pipeline run."""
    path: str
    fixes: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    changed: bool = False
