# src/sitealign/core/services/content_input_service.py
import logging
from pathlib import Path
from typing import List

from pydantic import TypeAdapter, ValidationError

from reconciler.errors import ContentInputError
from reconciler.model import FaqEntry, GraphTemplate
from sitealign.core.services.json_service import from_json

logger = logging.getLogger(__name__)

_FAQ_ADAPTER = TypeAdapter(List[FaqEntry])


class ContentInputService:
    """
    Loads the content-derived inputs of a site: FAQ bank, knowledge-graph
    template and disclosure text. Any malformed input raises ContentInputError.
    """

    def __init__(self, site_root: Path):
        self.site_root = site_root

    def _label(self, path: Path) -> str:
        try:
            return path.relative_to(self.site_root).as_posix()
        except ValueError:
            return str(path)

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ContentInputError(self._label(path), f"unreadable ({e.strerror or e})") from e

    def load_faq_bank(self, path: Path) -> List[FaqEntry]:
        """List of {q, a} entries in bank order. A missing bank is an empty bank."""
        if not path.exists():
            logger.debug("No FAQ bank at %s", path)
            return []
        raw = self._read(path).strip()
        if not raw:
            return []
        try:
            return _FAQ_ADAPTER.validate_python(from_json(raw))
        except ValueError as e:
            # pydantic's ValidationError is a ValueError as well
            reason = "invalid FAQ entries" if isinstance(e, ValidationError) else f"invalid JSON ({e})"
            raise ContentInputError(self._label(path), reason) from e

    def load_template(self, path: Path) -> GraphTemplate:
        """Knowledge-graph template; a missing file yields an empty template."""
        if not path.exists():
            logger.debug("No knowledge-graph template at %s", path)
            return GraphTemplate()
        raw = self._read(path)
        try:
            return GraphTemplate.from_document(from_json(raw))
        except ValueError as e:
            raise ContentInputError(self._label(path), f"invalid template ({e})") from e

    def load_disclosure(self, path: Path) -> str:
        text = self._read(path).strip()
        if not text:
            raise ContentInputError(self._label(path), "empty disclosure text")
        return text
