"""Critical CSS pipeline for a single emitted page."""

from __future__ import annotations

from typing import Optional

from critical_inline.core.logging import get_logger
from critical_inline.models.critical_css import (
    CriticalCssOptions,
    PageContext,
    RewriteOutcome,
    RewriteSuccess,
    RewriteUnchanged,
)
from critical_inline.services.inliner import StylesheetInliner
from critical_inline.services.purger import CssPurger
from critical_inline.services.renderer import BrowserRenderer
from critical_inline.services.rewriter import MarkupRewriter
from critical_inline.services.stylesheet_cache import StylesheetCache

logger = get_logger(__name__)


class CriticalCssPipeline:
    """Inline, render, measure, purge and rewrite one page.

    Any failure leaves the page untouched: ``process`` then returns a
    ``RewriteUnchanged`` carrying the original markup byte for byte.
    """

    def __init__(
        self,
        options: CriticalCssOptions,
        cache: Optional[StylesheetCache] = None,
        rewriter: Optional[MarkupRewriter] = None,
    ) -> None:
        self.options = options
        self.cache = cache if cache is not None else StylesheetCache()
        self.inliner = StylesheetInliner(self.cache)
        self.purger = CssPurger(self.cache)
        self.rewriter = rewriter if rewriter is not None else MarkupRewriter()

    def process(self, html: str, renderer: BrowserRenderer, context: PageContext) -> RewriteOutcome:
        try:
            return self._process(html, renderer)
        except Exception as exc:
            logger.warning(
                "critical_css_failed",
                filename=context.filename,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return RewriteUnchanged(html=html, reason=f"{type(exc).__name__}: {exc}")

    def _process(self, html: str, renderer: BrowserRenderer) -> RewriteSuccess:
        width, height = self.options.viewport_width, self.options.viewport_height

        inlined = self.inliner.inline(html, self.options.output_dir)
        with renderer.new_page(width, height) as page:
            page.load_html(inlined.html, self.options.timeout_ms)
            skeleton = page.measure_viewport_skeleton(width, height)

        critical_css = self.purger.purge(skeleton, inlined.stylesheet_ids)
        final_html, tags = self.rewriter.rewrite(html, critical_css)
        return RewriteSuccess(html=final_html, tags=tags, critical_css=critical_css)
