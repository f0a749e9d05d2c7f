"""Exception hierarchy for critical CSS generation.

Everything raised inside a page run derives from ``CriticalCssError`` so the
pipeline can fall back to the untouched page on any of them.
"""

from __future__ import annotations


class CriticalCssError(Exception):
    """Base exception for critical CSS failures."""


class StylesheetNotFoundError(CriticalCssError, FileNotFoundError):
    """A stylesheet referenced by the page does not exist in the output directory."""

    def __init__(self, stylesheet_id: str, path: str) -> None:
        super().__init__(f"Stylesheet {stylesheet_id!r} not found at {path}")
        self.stylesheet_id = stylesheet_id
        self.path = path


class RenderError(CriticalCssError):
    """Browser launch, page creation, content loading or evaluation failure."""


class RenderTimeoutError(RenderError, TimeoutError):
    """The page did not reach network quiescence within the configured timeout."""
