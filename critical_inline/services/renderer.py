"""Headless Chromium rendering environment backed by Playwright."""

from __future__ import annotations

from contextlib import contextmanager, suppress
from typing import Iterator, List, Optional

from playwright.sync_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)

from critical_inline.core.config import settings
from critical_inline.core.errors import RenderError, RenderTimeoutError
from critical_inline.core.logging import get_logger
from critical_inline.services.skeleton import MEASURE_SCRIPT, build_skeleton

logger = get_logger(__name__)


class RenderPage:
    """One isolated page opened for a single document."""

    def __init__(self, page: Page) -> None:
        self._page = page

    def load_html(self, html: str, timeout_ms: int) -> None:
        """Load ``html`` and wait until the network has been idle."""

        try:
            self._page.set_content(html, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise RenderTimeoutError(f"Page did not settle within {timeout_ms} ms") from exc
        except PlaywrightError as exc:
            raise RenderError(f"Loading page content failed: {exc}") from exc

    def measure_viewport_skeleton(self, viewport_width: int, viewport_height: int) -> str:
        """Return the skeleton document of the elements inside the viewport."""

        try:
            snapshot = self._page.evaluate(MEASURE_SCRIPT)
        except PlaywrightTimeoutError as exc:
            raise RenderTimeoutError("Viewport measurement timed out") from exc
        except PlaywrightError as exc:
            raise RenderError(f"Viewport measurement failed: {exc}") from exc

        if not isinstance(snapshot, dict):
            raise RenderError(f"Unexpected measurement result: {type(snapshot).__name__}")
        return build_skeleton(snapshot, viewport_width, viewport_height)

    def close(self) -> None:
        with suppress(PlaywrightError):
            self._page.close()


class BrowserRenderer:
    """Owns the single Chromium instance shared by every page of a build."""

    def __init__(
        self,
        headless: Optional[bool] = None,
        executable_path: Optional[str] = None,
        args: Optional[List[str]] = None,
    ) -> None:
        self.headless = settings.headless if headless is None else headless
        self.executable_path = executable_path or settings.browser_executable_path
        self.args = list(settings.browser_args if args is None else args)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    def launch(self) -> None:
        """Start Chromium. Calling it on a running renderer does nothing."""

        if self._browser is not None:
            return

        playwright = sync_playwright().start()
        try:
            self._browser = playwright.chromium.launch(
                headless=self.headless,
                args=self.args,
                executable_path=self.executable_path,
            )
        except PlaywrightError as exc:
            playwright.stop()
            raise RenderError(f"Chromium failed to launch: {exc}") from exc

        self._playwright = playwright
        logger.info("renderer_launched", headless=self.headless, executable_path=self.executable_path)

    @contextmanager
    def new_page(self, viewport_width: int, viewport_height: int) -> Iterator[RenderPage]:
        """Open an independent page with the given viewport; closed on exit."""

        if self._browser is None:
            raise RenderError("Renderer is not running")

        try:
            page = self._browser.new_page(viewport={"width": viewport_width, "height": viewport_height})
        except PlaywrightError as exc:
            raise RenderError(f"Opening a page failed: {exc}") from exc

        render_page = RenderPage(page)
        try:
            yield render_page
        finally:
            render_page.close()

    def close(self) -> None:
        """Shut the browser down. A renderer that never launched is left alone."""

        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is None:
            return

        try:
            browser.close()
        except PlaywrightError as exc:
            logger.warning("renderer_close_failed", error=str(exc))
        finally:
            if playwright is not None:
                playwright.stop()
        logger.info("renderer_closed")
