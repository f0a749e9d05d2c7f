"""Rewrites page markup: inline critical CSS, defer stylesheets and scripts."""

from __future__ import annotations

import re
from typing import List, Tuple

from critical_inline.models.critical_css import InjectionTag
from critical_inline.services.markup import (
    CSS_LINK_TAG_RE,
    SCRIPT_TAG_RE,
    find_first_stylesheet_link,
    parse_attributes,
)

DEFERRED_LINK_TEMPLATE = (
    '<link rel="stylesheet" href="{href}" media="print" '
    "onload=\"this.media='all'; this.onload=null; this.isLoaded=true\">"
)
DEFAULT_SCRIPT_TYPE = "module"


class MarkupRewriter:
    """Applies the deferral rewrite to the original, non-inlined page."""

    def rewrite(self, html: str, critical_css: str) -> Tuple[str, List[InjectionTag]]:
        tags: List[InjectionTag] = []
        html = self._splice_critical_css(html, critical_css, tags)
        html = self._defer_stylesheets(html, tags)
        html = self._defer_scripts(html, tags)
        return html, tags

    @staticmethod
    def _splice_critical_css(html: str, critical_css: str, tags: List[InjectionTag]) -> str:
        """Put the critical CSS right before the first stylesheet link, or ask for a head-prepend."""

        match = find_first_stylesheet_link(html)
        if match is None:
            tags.append(InjectionTag(tag="style", children=critical_css, inject_to="head-prepend"))
            return html
        return f"{html[:match.start()]}<style>{critical_css}</style>{html[match.start():]}"

    @staticmethod
    def _defer_stylesheets(html: str, tags: List[InjectionTag]) -> str:
        def _replace(match: re.Match) -> str:
            href = parse_attributes(match.group(0)).get("href") or ""
            tags.append(
                InjectionTag(
                    tag="noscript",
                    children=[InjectionTag(tag="link", attrs={"rel": "stylesheet", "href": href})],
                    inject_to="body",
                )
            )
            return DEFERRED_LINK_TEMPLATE.format(href=href)

        return CSS_LINK_TAG_RE.sub(_replace, html)

    @staticmethod
    def _defer_scripts(html: str, tags: List[InjectionTag]) -> str:
        """Drop each external script tag and re-issue it as a deferred body script."""

        def _replace(match: re.Match) -> str:
            attributes = parse_attributes(match.group(0))
            tags.append(
                InjectionTag(
                    tag="script",
                    attrs={
                        "type": attributes.get("type") or DEFAULT_SCRIPT_TYPE,
                        "src": attributes.get("src") or "",
                        "defer": True,
                    },
                    inject_to="body",
                )
            )
            return ""

        return SCRIPT_TAG_RE.sub(_replace, html)
