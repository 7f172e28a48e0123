# src/reconciler/dom/upsert.py
"""
Tag upsert engine.

Every operation takes the inner text of a head region and returns the new
inner text plus a `changed` flag. A second run over an already canonical head
must always report `changed=False`.
"""
import html
import re
from typing import List, Optional, Tuple

from reconciler.model import TAG_BODY, TagPattern, parse_attributes

INDENT = "  "
LINK_LINE_RE = re.compile(r"(^[ \t]*)?<link\b" + TAG_BODY + r"*>", re.IGNORECASE | re.MULTILINE)

JSON_LD_OPEN = r"""<script\b""" + TAG_BODY + r"""*?\btype\s*=\s*["']application/ld\+json["']""" + TAG_BODY + r"*>"
JSON_LD_RE = re.compile(JSON_LD_OPEN + r"(.*?)</script\s*>", re.IGNORECASE | re.DOTALL)
JSON_LD_LINE_RE = re.compile(
    r"(?P<lead>^[ \t]*)?(?P<block>" + JSON_LD_OPEN + r".*?</script\s*>)(?P<trail>[ \t]*(?:\n|\Z))?",
    re.IGNORECASE | re.DOTALL | re.MULTILINE,
)


def escape_attribute(value: object) -> str:
    return html.escape(str(value), quote=True)


def meta_tag(attr: str, key: str, value: str) -> str:
    return f'<meta {attr}="{key}" content="{escape_attribute(value)}">'


def link_tag(rel: str, href: str, sizes: Optional[str] = None, type_: Optional[str] = None) -> str:
    parts = [f'rel="{rel}"', f'href="{escape_attribute(href)}"']
    if sizes:
        parts.append(f'sizes="{sizes}"')
    if type_:
        parts.append(f'type="{type_}"')
    return f"<link {' '.join(parts)}>"


def append_line(inner: str, line: str) -> str:
    """Trims trailing whitespace and appends exactly one indented line."""
    return f"{inner.rstrip()}\n{INDENT}{line}\n"


def upsert_tag(inner: str, pattern: TagPattern, desired: str, force: bool = True) -> Tuple[str, bool]:
    """
    Insert-if-absent, replace-if-different, no-op-if-identical.

    With `force=False` an existing tag is never touched, whatever it holds:
    the call only fills a gap.
    """
    return _apply(inner, pattern.find(inner), desired.strip(), force)


def _apply(inner: str, match: Optional["re.Match[str]"], desired: str, force: bool = True) -> Tuple[str, bool]:
    if match:
        if match.group(0).strip() == desired or not force:
            return inner, False
        indent = match.group(1) or ""
        return inner[:match.start()] + indent + desired + inner[match.end():], True
    return append_line(inner, desired), True


def ensure_meta(
        inner: str,
        key: str,
        value: str,
        attrs: Tuple[str, ...] = ("name",),
        force: bool = True,
        keep_attr: bool = False,
) -> Tuple[str, bool]:
    """
    Upserts `<meta {attr}="{key}" content="{value}">`.

    `attrs` lists every attribute under which an existing tag is recognised;
    the first one is used for new tags. With `keep_attr` an existing tag keeps
    the attribute it was written with.
    """
    pattern = TagPattern(kind="meta", attrs=attrs, value=key)
    attr = attrs[0]
    if keep_attr:
        attr = pattern.matched_attr(inner) or attr
    return upsert_tag(inner, pattern, meta_tag(attr, key, value), force=force)


def ensure_link(
        inner: str,
        rel: str,
        href: str,
        sizes: Optional[str] = None,
        type_: Optional[str] = None,
) -> Tuple[str, bool]:
    pattern = TagPattern(kind="link", attrs=("rel",), value=rel)
    return upsert_tag(inner, pattern, link_tag(rel, href, sizes=sizes, type_=type_))


def ensure_icon(
        inner: str,
        rel: str,
        href: str,
        sizes: Optional[str] = None,
        type_: Optional[str] = None,
) -> Tuple[str, bool]:
    """Like `ensure_link`, but icons sharing a rel are told apart by their `sizes`."""
    match = None
    for candidate in LINK_LINE_RE.finditer(inner):
        attrs = parse_attributes(candidate.group(0))
        if attrs.get("rel", "").lower() == rel.lower() and (attrs.get("sizes") or None) == sizes:
            match = candidate
            break
    return _apply(inner, match, link_tag(rel, href, sizes=sizes, type_=type_))


def json_ld_blocks(inner: str) -> List[str]:
    """Raw contents of every structured-data script block, in document order."""
    return [m.group(1) for m in JSON_LD_RE.finditer(inner)]


def _strip_json_ld(match: "re.Match[str]") -> str:
    lead, trail = match.group("lead"), match.group("trail")
    if lead is not None and trail is not None:
        return ""
    return (lead or "") + (trail or "")


def replace_json_ld(inner: str, json_text: str) -> Tuple[str, bool, int]:
    """
    Removes every existing structured-data block and appends exactly one.

    Returns (inner', changed, removed_count). Blocks are replaced, never merged.
    """
    stripped, removed = JSON_LD_LINE_RE.subn(_strip_json_ld, inner)
    block = f'<script type="application/ld+json">\n{json_text}\n{INDENT}</script>'
    updated = append_line(stripped, block)
    return updated, updated != inner, removed
