# src/reconciler/dom/text.py
import re
from typing import List, Optional

from bs4 import BeautifulSoup

PARAGRAPH_RE = re.compile(r"<p\b[^>]*>(.*?)</p\s*>", re.IGNORECASE | re.DOTALL)
CARE_STEPS_RE = re.compile(
    r"""<ol\b[^>]*?\bclass\s*=\s*["'][^"']*\bcare-steps\b[^"']*["'][^>]*>(.*?)</ol\s*>""",
    re.IGNORECASE | re.DOTALL,
)
LIST_ITEM_RE = re.compile(r"<li\b[^>]*>(.*?)</li\s*>", re.IGNORECASE | re.DOTALL)
WS_RE = re.compile(r"\s+")


def strip_tags(fragment: str) -> str:
    """Visible text of an HTML fragment, whitespace-normalized."""
    if not fragment:
        return ""
    text = BeautifulSoup(fragment, "html.parser").get_text(" ")
    return WS_RE.sub(" ", text).strip()


def first_paragraph_text(text: str, start: int = 0) -> str:
    match = PARAGRAPH_RE.search(text, start)
    return strip_tags(match.group(1)) if match else ""


def derive_description(text: str, start: int = 0, limit: int = 155) -> Optional[str]:
    """
    Description derived from the first paragraph of the body.
    Longer text is cut to `limit` characters including a trailing '...'.
    """
    paragraph = first_paragraph_text(text, start)
    if not paragraph:
        return None
    if len(paragraph) > limit:
        return f"{paragraph[:limit - 3].rstrip()}..."
    return paragraph


def extract_care_steps(text: str) -> List[str]:
    """Step texts of the first ordered 'care-steps' list, markup removed."""
    match = CARE_STEPS_RE.search(text)
    if not match:
        return []
    steps = [strip_tags(li) for li in LIST_ITEM_RE.findall(match.group(1))]
    return [step for step in steps if step]
