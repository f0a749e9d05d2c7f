"""Regex helpers for scanning compiler-generated HTML.

Tags are expected on a single line with double or single quoted attribute
values. This is not an HTML parser.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

LINK_TAG_RE = re.compile(r"<link\b[^>]*>", re.IGNORECASE)
CSS_LINK_TAG_RE = re.compile(r"""<link\b[^>]*\bhref=(["'])[^"'>]*\.css\1[^>]*>""", re.IGNORECASE)
SCRIPT_TAG_RE = re.compile(r"""<script\b[^>]*\bsrc=(["'])[^"'>]*\.js\1[^>]*>\s*</script>""", re.IGNORECASE)

_ATTR_RE = re.compile(
    r"""([^\s"'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?""",
)
_TAG_NAME_RE = re.compile(r"^<\s*[A-Za-z][\w-]*")


def parse_attributes(tag: str) -> Dict[str, Optional[str]]:
    """Return the attributes of a single start tag, lower-casing names.

    Valueless attributes map to ``None``. The first occurrence of a name wins.
    """

    start_tag = tag.split(">", 1)[0]
    body = _TAG_NAME_RE.sub("", start_tag, count=1).rstrip("/")
    attributes: Dict[str, Optional[str]] = {}
    for match in _ATTR_RE.finditer(body):
        name = match.group(1).lower()
        if name in attributes:
            continue
        value = next((g for g in match.group(2, 3, 4) if g is not None), None)
        attributes[name] = value
    return attributes


def is_stylesheet_link(tag: str) -> bool:
    rel = parse_attributes(tag).get("rel") or ""
    return "stylesheet" in rel.lower().split()


def stylesheet_href(tag: str) -> Optional[str]:
    """Return the href of a ``<link rel="stylesheet">`` tag, ``None`` for any other link."""

    if not is_stylesheet_link(tag):
        return None
    return parse_attributes(tag).get("href") or None


def find_first_stylesheet_link(html: str) -> Optional[re.Match]:
    for match in LINK_TAG_RE.finditer(html):
        if is_stylesheet_link(match.group(0)):
            return match
    return None
