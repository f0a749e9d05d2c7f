"""Build tool integration: one shared browser per build, one pipeline run per page."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from critical_inline.core.logging import get_logger
from critical_inline.models.critical_css import (
    CriticalCssOptions,
    PageContext,
    RewriteOutcome,
    RewriteSuccess,
    RewriteUnchanged,
)
from critical_inline.services.critical_css import CriticalCssPipeline
from critical_inline.services.renderer import BrowserRenderer
from critical_inline.services.stylesheet_cache import StylesheetCache

logger = get_logger(__name__)

BUILD_COMMAND = "build"


class CriticalCssBuildHook:
    """Lifecycle callbacks the host build tool drives.

    ``config`` runs once at build start, ``transform_index_html`` once per
    emitted HTML document and ``close_bundle`` once at the end. Outside a
    production build, or when Chromium cannot start, every page passes
    through unchanged.
    """

    name = "critical-css"

    def __init__(
        self,
        options: Optional[CriticalCssOptions] = None,
        renderer_factory: Callable[[], BrowserRenderer] = BrowserRenderer,
    ) -> None:
        self.options = options or CriticalCssOptions.from_settings()
        self.renderer_factory = renderer_factory
        self.renderer: Optional[BrowserRenderer] = None
        self.cache: Optional[StylesheetCache] = None
        self.pipeline: Optional[CriticalCssPipeline] = None

    def config(self, command: str) -> None:
        if command != BUILD_COMMAND or self.renderer is not None:
            return

        renderer = self.renderer_factory()
        try:
            renderer.launch()
        except Exception as exc:
            logger.error("renderer_launch_failed", error_type=type(exc).__name__, error=str(exc))
            return

        self.renderer = renderer
        self.cache = StylesheetCache()
        self.pipeline = CriticalCssPipeline(self.options, cache=self.cache)

    def transform_index_html(self, html: str, context: PageContext | Dict[str, Any]) -> RewriteOutcome:
        if not isinstance(context, PageContext):
            context = PageContext.model_validate(context)

        if self.renderer is None or self.pipeline is None:
            return RewriteUnchanged(html=html, reason="renderer not running")

        outcome = self.pipeline.process(html, self.renderer, context)
        if isinstance(outcome, RewriteSuccess):
            logger.info(
                "critical_css_generated",
                filename=context.filename,
                critical_bytes=len(outcome.critical_css),
                tags=len(outcome.tags),
                bundle_assets=len(context.bundle),
            )
        return outcome

    def close_bundle(self) -> None:
        renderer, self.renderer = self.renderer, None
        self.pipeline = None
        if self.cache is not None:
            self.cache.clear()
            self.cache = None
        if renderer is None:
            return
        renderer.close()
