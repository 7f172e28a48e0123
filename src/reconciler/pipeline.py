# src/reconciler/pipeline.py
"""
Declared reconciliation pipelines.

A stage is a plain function `(state, ctx) -> None` tagged with `stage_spec`.
Stages read and write one shared `DocumentState`; head stages edit
`state.inner` and are skipped when the document has no <head>, everything
else edits `state.html`. `splice_head` is the single point where head edits
reach the document text.
"""
import logging
import posixpath
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from reconciler.dom import head as head_dom
from reconciler.dom import images as image_dom
from reconciler.dom import markup as markup_dom
from reconciler.dom import text as text_dom
from reconciler.dom.upsert import ensure_icon, ensure_link, ensure_meta, json_ld_blocks, replace_json_ld
from reconciler.errors import StageError
from reconciler.model import (
    CanonicalRecord,
    DocumentSummary,
    FaqEntry,
    GraphTemplate,
    HeadRegion,
    PrimaryImage,
    ReconcileSettings,
    TagPattern,
)
from reconciler.services.canonical_service import CanonicalService
from reconciler.services.structured_data_service import StructuredDataBuilder

logger = logging.getLogger(__name__)

OG_ATTRS = ("property", "name")
TWITTER_ATTRS = ("name", "property")
ROBOTS_DEFAULT = "index,follow"
CANONICAL_PATTERN = TagPattern(kind="link", attrs=("rel",), value="canonical")
DESCRIPTION_PATTERN = TagPattern(kind="meta", attrs=("name",), value="description")


class DocumentState(BaseModel):
    """Mutable per-document state shared by every stage of one pipeline run."""
    rel_path: str
    original: str
    html: str
    region: Optional[HeadRegion] = None
    inner: str = ""
    record: Optional[CanonicalRecord] = None
    title: str = ""
    description: str = ""
    primary_image: Optional[PrimaryImage] = None
    aborted: bool = False
    summary: DocumentSummary

    @classmethod
    def load(cls, rel_path: str, text: str, display_path: Optional[str] = None) -> "DocumentState":
        return cls(
            rel_path=rel_path,
            original=text,
            html=text,
            summary=DocumentSummary(path=display_path or rel_path),
        )

    @property
    def changed(self) -> bool:
        return not self.aborted and self.html != self.original

    @property
    def is_index(self) -> bool:
        return posixpath.basename(self.rel_path) == "index.html"

    def fix(self, message: str) -> None:
        self.summary.fixes.append(message)

    def warn(self, message: str) -> None:
        self.summary.warnings.append(message)


class ReconcileContext:
    """Site-wide services and content inputs, built once per batch."""

    def __init__(
            self,
            settings: ReconcileSettings,
            faq_entries: Optional[Sequence[FaqEntry]] = None,
            template: Optional[GraphTemplate] = None,
            disclosure: Optional[str] = None,
            asset_exists: Optional[Callable[[str], bool]] = None,
            today: Optional[Callable[[], str]] = None,
    ):
        self.settings = settings
        # None means the input was unusable and the feature is disabled
        self.faq_entries = list(faq_entries) if faq_entries is not None else None
        self.template = template
        self.disclosure = disclosure
        self.asset_exists = asset_exists
        self.canonical = CanonicalService(settings.origin)
        self.builder = StructuredDataBuilder(
            origin=settings.origin,
            site_name=settings.site_name,
            language=settings.language,
            article_type=settings.article_type,
            howto_name=settings.howto_name,
            summary_selector=settings.summary_selector,
            today=today,
        )

    def asset_available(self, site_path: str) -> bool:
        if self.asset_exists is None:
            return True
        return self.asset_exists(site_path)


Stage = Callable[[DocumentState, ReconcileContext], None]


def stage_spec(name: str, requires_head: bool = False):
    """
    Decorator declaring a pipeline stage's name and whether it needs a located head.
    """
    def decorator(func):
        func.stage_name = name
        func.requires_head = requires_head
        return func
    return decorator


class Pipeline:
    """Named, ordered list of stages applied to one document at a time."""

    def __init__(self, name: str, stages: List[Stage]):
        self.name = name
        self.stages = stages

    @property
    def stage_names(self) -> List[str]:
        return [stage.stage_name for stage in self.stages]

    def run(self, state: DocumentState, ctx: ReconcileContext) -> DocumentState:
        """
        Applies every stage in order. A failing stage turns into a warning and
        aborts the rest of the document; nothing is written for it afterwards.
        """
        for stage in self.stages:
            if stage.requires_head and state.region is None:
                continue
            try:
                stage(state, ctx)
            except StageError as e:
                state.warn(f"Stage '{stage.stage_name}' failed: {e}")
                state.aborted = True
                break
            except Exception as e:
                logger.debug("Stage '%s' crashed on %s", stage.stage_name, state.rel_path, exc_info=True)
                state.warn(f"Stage '{stage.stage_name}' failed: {e}")
                state.aborted = True
                break
        return state


# --- Helpers ---

def _warn_duplicates(state: DocumentState, pattern: TagPattern) -> None:
    if pattern.count(state.inner) > 1:
        state.warn(f"Duplicate {pattern.describe()} tags, first kept")


def _align_meta_group(
        state: DocumentState,
        pairs: Sequence[Tuple[str, str]],
        attrs: Tuple[str, ...],
        keep_attr: bool = False,
) -> bool:
    changed = False
    for key, value in pairs:
        _warn_duplicates(state, TagPattern(kind="meta", attrs=attrs, value=key))
        state.inner, did_change = ensure_meta(state.inner, key, value, attrs=attrs, keep_attr=keep_attr)
        changed = changed or did_change
    return changed


# --- Document stages ---

@stage_spec("domain-typos")
def fix_domain_typos(state: DocumentState, ctx: ReconcileContext) -> None:
    state.html, count = image_dom.fix_domain_typos(state.html, ctx.settings.misspelled_origins, ctx.settings.origin)
    if count:
        state.fix("Corrected domain typo")


@stage_spec("locate-head")
def locate_head(state: DocumentState, ctx: ReconcileContext) -> None:
    state.region = head_dom.locate_head(state.html)
    state.record = ctx.canonical.derive(state.rel_path)
    if state.region is None:
        state.warn("Missing <head> section")
        return
    state.inner = state.region.inner


@stage_spec("primary-image")
def resolve_primary_image(state: DocumentState, ctx: ReconcileContext) -> None:
    state.primary_image = image_dom.resolve_primary_image(
        state.html,
        state.rel_path,
        ctx.settings.origin,
        fallback=ctx.settings.fallback_image,
        asset_exists=ctx.asset_exists if ctx.settings.verify_assets else None,
        start=head_dom.body_start(state.html),
        head=state.inner if state.region else None,
    )


# --- Head stages ---

@stage_spec("icons", requires_head=True)
def ensure_icons(state: DocumentState, ctx: ReconcileContext) -> None:
    for icon in ctx.settings.icons:
        if not ctx.asset_available(icon.href):
            logger.debug("Icon %s not found, skipped", icon.href)
            continue
        state.inner, changed = ensure_icon(state.inner, icon.rel, icon.href, sizes=icon.sizes, type_=icon.type_)
        if changed:
            state.fix(f"Ensured {icon.describe()}")


@stage_spec("canonical", requires_head=True)
def ensure_canonical(state: DocumentState, ctx: ReconcileContext) -> None:
    _warn_duplicates(state, CANONICAL_PATTERN)
    state.inner, changed = ensure_link(state.inner, "canonical", state.record.canonical_url)
    if changed:
        state.fix("Ensured canonical link")


@stage_spec("title", requires_head=True)
def read_title(state: DocumentState, ctx: ReconcileContext) -> None:
    state.title = head_dom.read_title(state.inner) or ctx.settings.default_title


@stage_spec("title-check", requires_head=True)
def check_title(state: DocumentState, ctx: ReconcileContext) -> None:
    title = head_dom.read_title(state.inner)
    limits = ctx.settings
    if not title:
        state.warn("Missing <title>")
    elif not limits.title_min <= len(title) <= limits.title_max:
        state.warn(f"Title length {len(title)} outside preferred range ({limits.title_min}-{limits.title_max})")
    state.title = title or ctx.settings.default_title


@stage_spec("description", requires_head=True)
def fill_description(state: DocumentState, ctx: ReconcileContext) -> None:
    """Fill-only: an authored description is never rewritten, an empty one counts as absent."""
    _warn_duplicates(state, DESCRIPTION_PATTERN)
    existing = head_dom.read_meta_content(state.inner, DESCRIPTION_PATTERN)
    if existing:
        if len(existing) > ctx.settings.description_max:
            state.warn(
                f"Meta description length {len(existing)} exceeds {ctx.settings.description_max} characters"
            )
        state.description = existing
        return

    derived = text_dom.derive_description(
        state.html, head_dom.body_start(state.html), limit=ctx.settings.derived_description
    )
    if not derived:
        state.warn("Missing meta description")
        state.description = ctx.settings.default_description
        return
    state.inner, changed = ensure_meta(state.inner, "description", derived, force=True)
    if changed:
        state.fix("Added meta description")
    state.description = derived


@stage_spec("robots", requires_head=True)
def fill_robots(state: DocumentState, ctx: ReconcileContext) -> None:
    state.inner, changed = ensure_meta(state.inner, "robots", ROBOTS_DEFAULT, force=False)
    if changed:
        state.fix("Added robots meta")


@stage_spec("open-graph", requires_head=True)
def align_open_graph(state: DocumentState, ctx: ReconcileContext) -> None:
    pairs = [
        ("og:type", "website" if state.is_index else "article"),
        ("og:site_name", ctx.settings.site_name),
        ("og:title", state.title),
        ("og:description", state.description),
        ("og:url", state.record.canonical_url),
    ]
    if state.primary_image:
        pairs.append(("og:image", state.primary_image.url))
        pairs.append(("og:image:alt", state.primary_image.caption or ctx.settings.og_image_alt))
    if _align_meta_group(state, pairs, OG_ATTRS):
        state.fix("Aligned Open Graph tags")


@stage_spec("twitter", requires_head=True)
def align_twitter(state: DocumentState, ctx: ReconcileContext) -> None:
    pairs = [
        ("twitter:card", "summary_large_image" if state.primary_image else "summary"),
        ("twitter:title", state.title),
        ("twitter:description", state.description),
    ]
    if state.primary_image:
        pairs.append(("twitter:image", state.primary_image.url))
        pairs.append(("twitter:image:alt", state.primary_image.caption or ctx.settings.og_image_alt))
    if _align_meta_group(state, pairs, TWITTER_ATTRS, keep_attr=True):
        state.fix("Aligned Twitter card tags")


@stage_spec("json-ld", requires_head=True)
def refresh_json_ld(state: DocumentState, ctx: ReconcileContext) -> None:
    if ctx.template is None:
        logger.debug("Knowledge-graph template unavailable, JSON-LD left as is for %s", state.rel_path)
        return

    blocks = json_ld_blocks(state.inner)
    if len(blocks) > 1:
        state.warn(f"Multiple JSON-LD blocks ({len(blocks)}), replaced with one")
    prior_dates, invalid = ctx.builder.extract_existing_dates(blocks)
    if invalid:
        state.warn("Invalid previous JSON-LD ignored")

    body = state.html[head_dom.body_start(state.html):]
    graph = ctx.builder.build_graph(
        body,
        state.record,
        state.title,
        state.description,
        ctx.faq_entries or [],
        ctx.template,
        prior_dates=prior_dates,
        explicit_date=head_dom.find_explicit_timestamp(body),
        primary_image=state.primary_image,
    )
    state.inner, changed, _ = replace_json_ld(state.inner, ctx.builder.serialize(graph))
    if changed:
        state.fix("Refreshed JSON-LD graph")


@stage_spec("splice-head", requires_head=True)
def splice_head(state: DocumentState, ctx: ReconcileContext) -> None:
    if state.inner != state.region.inner:
        state.html = head_dom.replace_head(state.html, state.region, state.inner)


# --- Body stages ---

def _edit_body(state: DocumentState, edit: Callable[..., Tuple], *args) -> Tuple:
    """Runs a `(text, ...) -> (text', ...)` helper over everything after the head block."""
    start = head_dom.head_end(state.html)
    result = edit(state.html[start:], *args)
    state.html = state.html[:start] + result[0]
    return result[1:]


@stage_spec("progress-markup")
def ensure_progress_markup(state: DocumentState, ctx: ReconcileContext) -> None:
    changed, header_found = _edit_body(state, markup_dom.ensure_progress_markup)
    if not header_found:
        state.warn("Missing <header> for progress bar injection")
    if changed:
        state.fix("Inserted progress bar markup")


@stage_spec("site-script")
def ensure_site_script(state: DocumentState, ctx: ReconcileContext) -> None:
    changed = _edit_body(state, markup_dom.ensure_site_script, ctx.settings.site_script)[0]
    if changed:
        state.fix(f"Added {posixpath.basename(ctx.settings.site_script)} reference")


@stage_spec("images")
def normalize_images(state: DocumentState, ctx: ReconcileContext) -> None:
    changed, warnings = _edit_body(state, image_dom.normalize_images)
    for warning in warnings:
        state.warn(warning)
    if changed:
        state.fix("Standardized image loading attributes")


@stage_spec("disclosure")
def upsert_disclosure(state: DocumentState, ctx: ReconcileContext) -> None:
    if ctx.disclosure is None:
        return
    changed = _edit_body(state, markup_dom.upsert_disclosure, ctx.disclosure)[0]
    if changed:
        state.fix("Updated disclosure block")


@stage_spec("faq")
def sync_faq_section(state: DocumentState, ctx: ReconcileContext) -> None:
    if ctx.faq_entries is None or not state.is_index:
        return
    changed = _edit_body(state, markup_dom.replace_faq_section, ctx.faq_entries)[0]
    if changed:
        state.fix("Synced FAQ module")


ENFORCE_PIPELINE = Pipeline("enforce", [
    fix_domain_typos,
    locate_head,
    ensure_canonical,
    check_title,
    fill_description,
    fill_robots,
    resolve_primary_image,
    align_open_graph,
    align_twitter,
    refresh_json_ld,
    splice_head,
    ensure_progress_markup,
    ensure_site_script,
    normalize_images,
])

ASSETS_PIPELINE = Pipeline("assets", [
    locate_head,
    ensure_icons,
    ensure_canonical,
    fill_robots,
    fill_description,
    read_title,
    resolve_primary_image,
    align_open_graph,
    align_twitter,
    splice_head,
    normalize_images,
    ensure_site_script,
])

INJECT_PIPELINE = Pipeline("inject", [
    upsert_disclosure,
    sync_faq_section,
])

PIPELINES = {pipeline.name: pipeline for pipeline in (ENFORCE_PIPELINE, ASSETS_PIPELINE, INJECT_PIPELINE)}
