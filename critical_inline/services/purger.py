"""Reduce a stylesheet to the rules whose selectors match a skeleton document."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple

import cssutils

from critical_inline.core.logging import get_logger
from critical_inline.services.stylesheet_cache import StylesheetCache

logger = get_logger(__name__)

cssutils.log.setLevel(logging.CRITICAL)
# Surviving rules are emitted through the shared cssutils serializer.
cssutils.ser.prefs.useMinified()

# Identifier-like tokens (tag, class and id names).
DEFAULT_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]+")
# Anything between markup delimiters, e.g. ``md:flex`` or ``w-[10px]``.
EXTENDED_TOKEN_RE = re.compile(r"""[^<>"=\s]+""")

SAFELIST_STANDARD = frozenset({"html", "body", "*", "::before", "::after"})
SAFELIST_GREEDY = (
    re.compile(r"\\\[.*?\\\]"),
    re.compile(r"-\\\[.*?\\\]"),
)

_IDENT = r"(?:\\[0-9a-fA-F]{1,6}\s?|\\.|[\w-]|[^\x00-\x7f])+"
_SELECTOR_PART_RE = re.compile(
    rf"(?P<pseudo>::?{_IDENT}(?:\((?:[^()]|\([^()]*\))*\))?)"
    rf"|\.(?P<cls>{_IDENT})"
    rf"|#(?P<id>{_IDENT})"
    r"""|\[\s*(?P<attr>[^\s~|^$*=\]]+)\s*"""
    r"""(?:(?P<op>[~|^$*]?=)\s*(?P<value>"[^"]*"|'[^']*'|[^\]\s]+)\s*[iIsS]?\s*)?\]"""
    rf"|(?P<tag>{_IDENT})"
    r"|(?P<other>.)",
    re.DOTALL,
)
_HEX_ESCAPE_RE = re.compile(r"\\([0-9a-fA-F]{1,6})\s?")
_CHAR_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_AT_KEYWORD_RE = re.compile(r"@([-\w]+)")

# At-rules whose block holds ordinary rules; their content is purged like the top level.
GROUPING_AT_RULES = frozenset({"media", "supports", "layer", "container", "scope", "document", "-moz-document"})


def extract_selectors(content: str) -> Set[str]:
    """Collect every token of ``content`` a selector part could refer to."""

    tokens = set(DEFAULT_TOKEN_RE.findall(content))
    tokens.update(EXTENDED_TOKEN_RE.findall(content))
    return tokens


def _hex_char(match: re.Match) -> str:
    codepoint = int(match.group(1), 16)
    if codepoint == 0 or codepoint > 0x10FFFF:
        return "\ufffd"
    return chr(codepoint)


def unescape_identifier(name: str) -> str:
    """Resolve CSS escapes: ``md\\:flex`` becomes ``md:flex``."""

    return _CHAR_ESCAPE_RE.sub(r"\1", _HEX_ESCAPE_RE.sub(_hex_char, name))


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def selector_is_kept(selector: str, tokens: Set[str]) -> bool:
    """Decide whether a single (comma-free) selector survives the purge.

    Every class, id, tag and attribute the selector requires has to be among
    ``tokens``. Pseudo-classes, pseudo-elements, combinators and ``*`` never
    disqualify a selector.
    """

    selector = selector.strip()
    if not selector:
        return False
    if selector in SAFELIST_STANDARD:
        return True
    if any(pattern.search(selector) for pattern in SAFELIST_GREEDY):
        return True

    for part in _SELECTOR_PART_RE.finditer(selector):
        if part.group("cls") is not None:
            if unescape_identifier(part.group("cls")) not in tokens:
                return False
        elif part.group("id") is not None:
            if unescape_identifier(part.group("id")) not in tokens:
                return False
        elif part.group("tag") is not None:
            tag = unescape_identifier(part.group("tag")).lower()
            if tag not in SAFELIST_STANDARD and tag not in tokens:
                return False
        elif part.group("attr") is not None:
            if part.group("attr") not in tokens:
                return False
            if part.group("op") == "=":
                words = _strip_quotes(part.group("value")).split()
                if any(word not in tokens for word in words):
                    return False
    return True


def _skip_string(css: str, start: int) -> int:
    """Return the index just past the string literal opening at ``start``."""

    quote = css[start]
    index = start + 1
    while index < len(css):
        char = css[index]
        if char == "\\":
            index += 2
            continue
        if char == quote or char == "\n":
            return index + 1
        index += 1
    return len(css)


def strip_comments(css: str) -> str:
    """Remove ``/* ... */`` comments, leaving string literals untouched."""

    parts: List[str] = []
    index = 0
    chunk_start = 0
    while index < len(css):
        char = css[index]
        if char == "\\":
            index += 2
        elif char in "\"'":
            index = _skip_string(css, index)
        elif css.startswith("/*", index):
            parts.append(css[chunk_start:index])
            end = css.find("*/", index + 2)
            index = len(css) if end == -1 else end + 2
            chunk_start = index
        else:
            index += 1
    parts.append(css[chunk_start:])
    return "".join(parts)


def split_blocks(css: str) -> List[Tuple[str, Optional[str]]]:
    """Split comment-free CSS into top-level ``(prelude, block)`` pairs.

    ``block`` is the text between the outer braces, or ``None`` for a
    statement ending in ``;`` such as ``@import``. An unterminated tail is
    discarded.
    """

    blocks: List[Tuple[str, Optional[str]]] = []
    prelude_start = 0
    block_start = 0
    depth = 0
    index = 0
    while index < len(css):
        char = css[index]
        if char == "\\":
            index += 2
            continue
        if char in "\"'":
            index = _skip_string(css, index)
            continue
        if char == "{":
            if depth == 0:
                block_start = index
            depth += 1
        elif char == "}":
            if depth == 0:
                prelude_start = index + 1
            else:
                depth -= 1
                if depth == 0:
                    blocks.append((css[prelude_start:block_start], css[block_start + 1:index]))
                    prelude_start = index + 1
        elif char == ";" and depth == 0:
            blocks.append((css[prelude_start:index], None))
            prelude_start = index + 1
        index += 1
    return blocks


def split_selector_list(prelude: str) -> List[str]:
    """Split a selector list on commas outside parentheses, brackets and strings."""

    selectors: List[str] = []
    depth = 0
    start = 0
    index = 0
    while index < len(prelude):
        char = prelude[index]
        if char == "\\":
            index += 2
            continue
        if char in "\"'":
            index = _skip_string(prelude, index)
            continue
        if char in "([":
            depth += 1
        elif char in ")]":
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            selectors.append(prelude[start:index].strip())
            start = index + 1
        index += 1
    selectors.append(prelude[start:].strip())
    return [selector for selector in selectors if selector]


class CssPurger:
    """Purges the combined stylesheets of a page against its skeleton."""

    def __init__(self, cache: StylesheetCache) -> None:
        self.cache = cache
        self._parser = cssutils.CSSParser(raiseExceptions=False, validate=False, parseComments=False)

    def purge(self, skeleton_html: str, stylesheet_ids: Iterable[str]) -> str:
        """Return the critical CSS, or an empty string when nothing matches."""

        stylesheet_ids = list(stylesheet_ids)
        css = self.cache.combined(stylesheet_ids)
        if not css.strip():
            return ""

        tokens = extract_selectors(skeleton_html)
        critical_css = "".join(self._purge_blocks(strip_comments(css), tokens))

        logger.debug(
            "css_purged",
            stylesheet_ids=stylesheet_ids,
            source_bytes=len(css),
            critical_bytes=len(critical_css),
        )
        return critical_css

    def _purge_blocks(self, css: str, tokens: Set[str]) -> List[str]:
        kept: List[str] = []
        for prelude, block in split_blocks(css):
            prelude = prelude.strip()
            if not prelude:
                continue

            if prelude.startswith("@"):
                if block is None:
                    # @import, @charset, @layer name lists
                    kept.append(f"{prelude};")
                    continue
                keyword = _AT_KEYWORD_RE.match(prelude)
                if keyword and keyword.group(1).lower() in GROUPING_AT_RULES:
                    inner = self._purge_blocks(block, tokens)
                    if inner:
                        kept.append(f"{prelude}{{{''.join(inner)}}}")
                else:
                    # @font-face, @keyframes, @page, @property
                    kept.append(f"{prelude}{{{block.strip()}}}")
                continue

            if block is None or not block.strip():
                continue
            survivors = [s for s in split_selector_list(prelude) if selector_is_kept(s, tokens)]
            if survivors:
                kept.append(self._serialize_rule(survivors, block))
        return kept

    def _serialize_rule(self, selectors: List[str], block: str) -> str:
        """Minify a style rule through cssutils, or keep it verbatim if cssutils rejects it."""

        source = f"{','.join(selectors)}{{{block.strip()}}}"
        sheet = self._parser.parseString(source)
        rules = [rule for rule in sheet.cssRules if rule.type == rule.STYLE_RULE]
        if len(rules) == 1 and len(rules[0].selectorList) == len(selectors) and rules[0].cssText:
            return rules[0].cssText
        return source
