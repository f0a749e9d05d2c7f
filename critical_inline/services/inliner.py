"""Replace stylesheet links with inline style blocks so a detached page renders styled."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List

from critical_inline.core.logging import get_logger
from critical_inline.models.critical_css import InlineResult
from critical_inline.services.markup import LINK_TAG_RE, stylesheet_href
from critical_inline.services.stylesheet_cache import StylesheetCache

logger = get_logger(__name__)


class StylesheetInliner:
    """Inlines every ``<link rel="stylesheet">`` of a page using a shared cache."""

    def __init__(self, cache: StylesheetCache) -> None:
        self.cache = cache

    def inline(self, html: str, output_dir: str | Path) -> InlineResult:
        """Return the page with stylesheet links swapped for ``<style>`` blocks.

        ``stylesheet_ids`` lists each distinct href once, in order of first
        appearance. Every occurrence of a link is replaced, keeping the
        cascade order of the source page. A missing stylesheet raises
        ``StylesheetNotFoundError``.
        """

        stylesheet_ids: List[str] = []

        def _replace(match: re.Match) -> str:
            tag = match.group(0)
            href = stylesheet_href(tag)
            if href is None:
                return tag
            content = self.cache.get(href, output_dir)
            if href not in stylesheet_ids:
                stylesheet_ids.append(href)
            return f"<style>{content}</style>"

        inlined = LINK_TAG_RE.sub(_replace, html)
        logger.debug("stylesheets_inlined", stylesheet_ids=stylesheet_ids)
        return InlineResult(html=inlined, stylesheet_ids=stylesheet_ids)
