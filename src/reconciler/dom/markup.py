# src/reconciler/dom/markup.py
"""
Body-side markup hooks: disclosure block, FAQ section, reading-progress
element and the site script tag.

Each helper returns (text', changed) and leaves the document untouched when
the hook is already in its canonical form.
"""
import re
from typing import Sequence, Tuple

from reconciler.dom.upsert import escape_attribute
from reconciler.model import TAG_BODY, FaqEntry

DISCLOSURE_RE = re.compile(r"""<section\b[^>]*\bid\s*=\s*["']disclosure["'].*?</section\s*>""", re.IGNORECASE | re.DOTALL)
FAQ_SECTION_RE = re.compile(
    r"""(<section\b[^>]*\bid\s*=\s*["']faqs["'][^>]*>)(.*?)(</section\s*>)""",
    re.IGNORECASE | re.DOTALL,
)
MAIN_OPEN_RE = re.compile(r"<main\b" + TAG_BODY + r"*>", re.IGNORECASE)
BODY_OPEN_RE = re.compile(r"<body\b" + TAG_BODY + r"*>", re.IGNORECASE)
HEADER_RE = re.compile(r"<header\b[^>]*>.*?</header\s*>", re.IGNORECASE | re.DOTALL)
HEADER_CLOSE_RE = re.compile(r"</header\s*>$", re.IGNORECASE)
BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)
PROGRESS_RE = re.compile(r"""\bclass\s*=\s*["'][^"']*\breading-progress\b""", re.IGNORECASE)
SLUG_RE = re.compile(r"[^a-z0-9]+")

PROGRESS_MARKUP = (
    '    <div class="progress" aria-hidden="true">\n'
    '      <i class="reading-progress"></i>\n'
    '    </div>'
)


def disclosure_html(text: str) -> str:
    return (
        '<section class="disclosure" id="disclosure">\n'
        f"      <p>{escape_attribute(text.strip())}</p>\n"
        "    </section>"
    )


def upsert_disclosure(text: str, disclosure: str) -> Tuple[str, bool]:
    """
    Replaces the existing disclosure section, else inserts it right after
    <main>, else right after <body>, else appends it to the document.
    """
    block = disclosure_html(disclosure)
    match = DISCLOSURE_RE.search(text)
    if match:
        updated = text[:match.start()] + block + text[match.end():]
        return updated, updated != text

    for opener, indent in ((MAIN_OPEN_RE, "\n    "), (BODY_OPEN_RE, "\n  ")):
        anchor = opener.search(text)
        if anchor:
            return text[:anchor.end()] + indent + block + text[anchor.end():], True
    return f"{text}\n{block}", True


def faq_slug(question: str) -> str:
    return "faq-" + SLUG_RE.sub("-", question.lower()).strip("-")


def build_faq_html(entries: Sequence[FaqEntry]) -> str:
    if not entries:
        return '            <div class="faq-list"></div>'
    details = "\n".join(
        f'              <details id="{faq_slug(entry.question)}">'
        f"<summary>{escape_attribute(entry.question)}</summary>"
        f"<div>{escape_attribute(entry.answer)}</div></details>"
        for entry in entries
    )
    return f'            <div class="faq-list">\n{details}\n            </div>'


def replace_faq_section(text: str, entries: Sequence[FaqEntry]) -> Tuple[str, bool]:
    """Rewrites the content of `<section id="faqs">` from the bank. No section, no edit."""
    match = FAQ_SECTION_RE.search(text)
    if not match:
        return text, False
    section = f"{match.group(1)}\n{build_faq_html(entries)}\n          {match.group(3)}"
    updated = text[:match.start()] + section + text[match.end():]
    return updated, updated != text


def count_faq_details(text: str) -> int:
    match = FAQ_SECTION_RE.search(text)
    if not match:
        return 0
    return len(re.findall(r"<details\b", match.group(2), re.IGNORECASE))


def has_progress_markup(text: str) -> bool:
    return bool(PROGRESS_RE.search(text))


def ensure_progress_markup(text: str) -> Tuple[str, bool, bool]:
    """
    Inserts the reading-progress hook before </header>.
    Returns (text', changed, header_found).
    """
    if has_progress_markup(text):
        return text, False, True
    header = HEADER_RE.search(text)
    if not header:
        return text, False, False
    block = HEADER_CLOSE_RE.sub(lambda m: f"{PROGRESS_MARKUP}\n  {m.group(0)}", header.group(0))
    return text[:header.start()] + block + text[header.end():], True, True


def has_site_script(text: str, src: str) -> bool:
    name = src.rsplit("/", 1)[-1]
    return bool(re.search(rf"""\bsrc\s*=\s*["'][^"']*{re.escape(name)}["']""", text, re.IGNORECASE))


def ensure_site_script(text: str, src: str = "/site.js") -> Tuple[str, bool]:
    """Adds a deferred script tag before </body> when no tag references the script yet."""
    if has_site_script(text, src):
        return text, False
    close = BODY_CLOSE_RE.search(text)
    if not close:
        return text, False
    tag = f'  <script src="{escape_attribute(src)}" defer></script>\n'
    return text[:close.start()] + tag + text[close.start():], True
