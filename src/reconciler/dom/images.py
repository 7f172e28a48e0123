# src/reconciler/dom/images.py
"""
Hero/image normalizer.

Images are classified as 'hero' (explicit hero marker or eager loading) or
'ordinary'. Ordinary images must carry loading="lazy" and decoding="async";
hero images are left exactly as authored.
"""
import logging
import posixpath
import re
from typing import Callable, List, Optional, Sequence, Tuple

from reconciler.model import QUOTED_VALUE_RE, TAG_BODY, ImageTag, PrimaryImage, parse_attributes

logger = logging.getLogger(__name__)

IMG_RE = re.compile(r"<img\b" + TAG_BODY + r"*>", re.IGNORECASE)
LINK_RE = re.compile(r"<link\b" + TAG_BODY + r"*>", re.IGNORECASE)

LAZY_POLICY: Tuple[Tuple[str, str], ...] = (("loading", "lazy"), ("decoding", "async"))


def collect_images(text: str, start: int = 0) -> List[ImageTag]:
    """All <img> tags at or after `start`, numbered from 1 in document order."""
    return [
        ImageTag.from_markup(m.group(0), index)
        for index, m in enumerate(IMG_RE.finditer(text, start), start=1)
    ]


def find_hero(images: Sequence[ImageTag]) -> Optional[ImageTag]:
    """Exactly the first image carrying a hero signal, if any."""
    return next((img for img in images if img.is_hero), None)


def find_preload_image(text: str) -> Optional[str]:
    for match in LINK_RE.finditer(text):
        attrs = parse_attributes(match.group(0))
        if attrs.get("rel", "").lower() == "preload" and attrs.get("as", "").lower() == "image":
            return attrs.get("href") or None
    return None


def to_site_path(src: Optional[str], rel_path: str) -> Optional[str]:
    """
    Resolves an image reference to a site-absolute path ('/assets/x.png').
    Absolute http(s) URLs are returned unchanged; data URIs yield None.
    """
    if not src:
        return None
    src = src.strip()
    if re.match(r"^https?://", src, re.IGNORECASE):
        return src
    if src.lower().startswith("data:"):
        return None
    cleaned = re.split(r"[?#]", src, maxsplit=1)[0]
    if not cleaned:
        return None
    if cleaned.startswith("/"):
        return cleaned
    base = posixpath.dirname(rel_path)
    joined = posixpath.normpath(posixpath.join(base, cleaned))
    if joined.startswith(".."):
        return None
    return f"/{joined}"


def to_absolute_url(site_path: str, origin: str) -> str:
    if re.match(r"^https?://", site_path, re.IGNORECASE):
        return site_path
    return f"{origin}{site_path}"


def resolve_primary_image(
        text: str,
        rel_path: str,
        origin: str,
        fallback: Optional[str] = None,
        asset_exists: Optional[Callable[[str], bool]] = None,
        start: int = 0,
        head: Optional[str] = None,
) -> Optional[PrimaryImage]:
    """
    Representative image of a document: preloaded image, else the hero
    image, else the first image, else the fallback asset.

    Images are collected at or after `start`; the preload link is looked up
    in `head` when given, in `text` otherwise. When `asset_exists` is given,
    local candidates whose file is missing are skipped. Caption and
    dimensions are taken from the hero tag when it is the chosen image.
    """
    images = collect_images(text, start)
    hero = find_hero(images)
    first = images[0] if images else None

    candidates = [
        ("preload", find_preload_image(text if head is None else head)),
        ("hero", hero.src if hero else None),
        ("first", first.src if first else None),
        ("fallback", fallback),
    ]
    hero_path = to_site_path(hero.src, rel_path) if hero else None

    for source, src in candidates:
        site_path = to_site_path(src, rel_path)
        if not site_path:
            continue
        if asset_exists and site_path.startswith("/") and not asset_exists(site_path):
            logger.debug("Skipping %s image candidate %s: asset not found", source, site_path)
            continue
        image = PrimaryImage(url=to_absolute_url(site_path, origin), source=source)
        if hero and site_path == hero_path:
            image.caption = hero.alt
            image.width = hero.width
            image.height = hero.height
        return image
    return None


def _attribute_re(name: str) -> "re.Pattern[str]":
    return re.compile(rf"""(?<![\w-]){name}\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>/]+))""", re.IGNORECASE)


def _mask_quoted(tag: str) -> str:
    """Blanks out quoted values so attribute names are only found outside them. Offsets are kept."""
    return QUOTED_VALUE_RE.sub(lambda m: m.group(0)[0] + " " * (len(m.group(0)) - 2) + m.group(0)[-1], tag)


def set_attribute(tag: str, name: str, value: str) -> str:
    """Sets `name="value"` on a start tag, keeping an already correct value untouched."""
    pattern = _attribute_re(name)
    located = pattern.search(_mask_quoted(tag))
    match = pattern.match(tag, located.start()) if located else None
    if match:
        current = next((g for g in match.groups() if g is not None), "")
        if current.strip().lower() == value:
            return tag
        return tag[:match.start()] + f'{name}="{value}"' + tag[match.end():]
    return re.sub(r"^<img\b", f'<img {name}="{value}"', tag, count=1, flags=re.IGNORECASE)


def normalize_images(text: str, start: int = 0) -> Tuple[str, bool, List[str]]:
    """
    Applies the lazy/async policy to every ordinary image at or after `start`.

    Returns (text', changed, warnings). Warnings name images without
    width/height hints; they never block the rewrite.
    """
    warnings: List[str] = []
    pieces: List[str] = []
    cursor = 0
    changed = False

    for index, match in enumerate(IMG_RE.finditer(text, start), start=1):
        image = ImageTag.from_markup(match.group(0), index)
        updated = image.markup
        if not image.is_hero:
            for name, value in LAZY_POLICY:
                updated = set_attribute(updated, name, value)
        if not image.has_size_hints:
            warnings.append(f"Missing width/height on image #{index} ({image.src or 'no src'})")
        if updated != image.markup:
            changed = True
        pieces.append(text[cursor:match.start()])
        pieces.append(updated)
        cursor = match.end()

    if not changed:
        return text, False, warnings
    pieces.append(text[cursor:])
    return "".join(pieces), True, warnings


def fix_domain_typos(text: str, misspelled: Sequence[str], origin: str) -> Tuple[str, int]:
    """Pure find-and-replace of known misspelled origins. Returns (text', substitutions)."""
    total = 0
    for wrong in misspelled:
        if not wrong or wrong in origin:
            continue
        count = text.count(wrong)
        if count:
            text = text.replace(wrong, origin)
            total += count
    return text, total
