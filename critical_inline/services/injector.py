"""Host-side placement of injection tags into a finished page."""

from __future__ import annotations

import html as html_lib
import re
from typing import Iterable, List

from critical_inline.models.critical_css import InjectionTag

VOID_TAGS = frozenset({"link", "meta", "base", "img", "br", "hr", "input"})

_HEAD_OPEN_RE = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_OPEN_RE = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)


def render_tag(tag: InjectionTag) -> str:
    """Serialize a tag. ``True`` attributes render bare, ``False``/``None`` are dropped."""

    attrs = []
    for name, value in (tag.attrs or {}).items():
        if value is True:
            attrs.append(name)
        elif value is False or value is None:
            continue
        else:
            attrs.append(f'{name}="{html_lib.escape(str(value), quote=True)}"')
    opening = f"<{tag.tag}{''.join(' ' + attr for attr in attrs)}>"

    if tag.tag in VOID_TAGS:
        return opening
    if isinstance(tag.children, list):
        inner = "".join(render_tag(child) for child in tag.children)
    else:
        inner = tag.children or ""
    return f"{opening}{inner}</{tag.tag}>"


def _insert_after(html: str, pattern: re.Pattern, markup: str) -> str | None:
    match = pattern.search(html)
    if match is None:
        return None
    return html[: match.end()] + markup + html[match.end():]


def _insert_before_last(html: str, pattern: re.Pattern, markup: str) -> str | None:
    matches = list(pattern.finditer(html))
    if not matches:
        return None
    index = matches[-1].start()
    return html[:index] + markup + html[index:]


def apply_injection_tags(html: str, tags: Iterable[InjectionTag]) -> str:
    """Place tags at their ``inject_to`` anchors, in list order per anchor.

    Missing anchors fall back to the start of the document for head
    positions and the end for body positions.
    """

    grouped: dict[str, List[str]] = {}
    for tag in tags:
        grouped.setdefault(tag.inject_to, []).append(render_tag(tag))

    for inject_to, rendered in grouped.items():
        markup = "".join(rendered)
        if inject_to == "head-prepend":
            result = _insert_after(html, _HEAD_OPEN_RE, markup)
            html = result if result is not None else markup + html
        elif inject_to == "head":
            result = _insert_before_last(html, _HEAD_CLOSE_RE, markup)
            html = result if result is not None else markup + html
        elif inject_to == "body-prepend":
            result = _insert_after(html, _BODY_OPEN_RE, markup)
            html = result if result is not None else html + markup
        else:
            result = _insert_before_last(html, _BODY_CLOSE_RE, markup)
            html = result if result is not None else html + markup
    return html
