# src/reconciler/dom/head.py
"""
Document accessor: locates the <head> block of a raw HTML document and
splices an edited inner content back into it.

Everything outside the inner content span is reproduced byte-for-byte.
"""
import html
import re
from typing import Optional

from reconciler.model import TAG_BODY, HeadRegion, TagPattern, parse_attributes

HEAD_BLOCK_RE = re.compile(r"(<head\b" + TAG_BODY + r"*>)(.*?)(</head\s*>)", re.IGNORECASE | re.DOTALL)
BODY_OPEN_RE = re.compile(r"<body\b" + TAG_BODY + r"*>", re.IGNORECASE)
TITLE_RE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
TIME_RE = re.compile(r"<time\b" + TAG_BODY + r"""*?\bdatetime\s*=\s*["']([^"']+)["']""" + TAG_BODY + r"*>", re.IGNORECASE)
WS_RE = re.compile(r"\s+")


def locate_head(text: str) -> Optional[HeadRegion]:
    """Returns the first head region of `text`, or None when the document has none."""
    match = HEAD_BLOCK_RE.search(text)
    if not match:
        return None
    return HeadRegion(
        start=match.start(),
        end=match.end(),
        open_tag=match.group(1),
        inner=match.group(2),
        close_tag=match.group(3),
    )


def replace_head(text: str, region: HeadRegion, new_inner: str) -> str:
    """Pure substring splice; the result is never re-scanned."""
    return text[:region.start] + region.open_tag + new_inner + region.close_tag + text[region.end:]


def locate_body(text: str, start: int = 0) -> int:
    """Index right after the first <body> open tag at or after `start`, or `start` when there is none."""
    match = BODY_OPEN_RE.search(text, start)
    return match.end() if match else start


def head_end(text: str) -> int:
    """Index right after the head block, 0 when the document has none."""
    region = locate_head(text)
    return region.end if region else 0


def body_start(text: str) -> int:
    """
    Start of the body content. The search begins after the head block, so
    markup quoted inside head scripts is never taken for body content.
    """
    return locate_body(text, head_end(text))


def read_title(inner: str) -> str:
    match = TITLE_RE.search(inner)
    if not match:
        return ""
    return html.unescape(WS_RE.sub(" ", match.group(1)).strip())


def read_meta_content(inner: str, pattern: TagPattern) -> Optional[str]:
    """
    Content of the first tag matching `pattern`.
    None when no such tag exists, "" when it exists without content.
    """
    match = pattern.find(inner)
    if not match:
        return None
    attrs = parse_attributes(match.group(0))
    return html.unescape(attrs.get("content", "")).strip()


def read_link_href(inner: str, rel: str) -> Optional[str]:
    match = TagPattern(kind="link", attrs=("rel",), value=rel).find(inner)
    if not match:
        return None
    return html.unescape(parse_attributes(match.group(0)).get("href", "")).strip()


def find_explicit_timestamp(text: str) -> Optional[str]:
    """The first `<time datetime="...">` value of the document, if any."""
    match = TIME_RE.search(text)
    return match.group(1).strip() if match else None
