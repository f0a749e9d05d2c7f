"""Builds the structure-only skeleton of the elements visible in the viewport."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Sequence, Tuple

from critical_inline.core.logging import get_logger

logger = get_logger(__name__)

# Runs inside the loaded page. Collects tag, attributes and bounding box of
# every element under <body>, in document order.
MEASURE_SCRIPT = """
() => {
  const attributesOf = (element) =>
    Array.from(element.attributes).map((attr) => [attr.name, attr.value]);

  const boxOf = (element) => {
    const rect = element.getBoundingClientRect();
    return { top: rect.top, left: rect.left, bottom: rect.bottom, right: rect.right };
  };

  const body = document.body;
  return {
    html: { tag: "html", attrs: attributesOf(document.documentElement) },
    body: { tag: "body", attrs: body ? attributesOf(body) : [] },
    elements: Array.from(document.querySelectorAll("body *")).map((element) => ({
      tag: element.tagName.toLowerCase(),
      attrs: attributesOf(element),
      rect: boxOf(element),
    })),
  };
}
"""


@dataclass
class ElementBox:
    tag: str
    attrs: List[Tuple[str, str]] = field(default_factory=list)
    top: float = 0.0
    left: float = 0.0
    bottom: float = 0.0
    right: float = 0.0


def _overlaps(start: float, end: float, limit: float) -> bool:
    """True when ``[start, end]`` shows any part of itself inside ``[0, limit)``."""

    if 0 <= start < limit:
        return True
    return start < 0 and end > 0


def is_in_viewport(rect: Mapping[str, float], viewport_width: int, viewport_height: int) -> bool:
    """Return True when any part of ``rect`` lies on-screen.

    Boxes straddling the top or left edge count as visible. A box that ends
    exactly at the origin does not.
    """

    return _overlaps(rect["top"], rect["bottom"], viewport_height) and _overlaps(
        rect["left"], rect["right"], viewport_width
    )


def serialize_attributes(attrs: Sequence[Sequence[str]]) -> str:
    """Render attribute pairs verbatim as ``name="value"``, space separated."""

    return " ".join(f'{name}="{value}"' for name, value in attrs)


def _open_tag(tag: str, attrs: Sequence[Sequence[str]]) -> str:
    serialized = serialize_attributes(attrs)
    return f"<{tag} {serialized}>" if serialized else f"<{tag}>"


def _parse_elements(raw_elements: Any) -> List[ElementBox]:
    boxes: List[ElementBox] = []
    for entry in raw_elements or []:
        try:
            rect = entry["rect"]
            boxes.append(
                ElementBox(
                    tag=str(entry["tag"]).lower(),
                    attrs=[(str(name), str(value)) for name, value in entry.get("attrs") or []],
                    top=float(rect["top"]),
                    left=float(rect["left"]),
                    bottom=float(rect["bottom"]),
                    right=float(rect["right"]),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("skeleton_element_skipped", entry=repr(entry)[:200])
            continue
    return boxes


def build_skeleton(snapshot: Mapping[str, Any], viewport_width: int, viewport_height: int) -> str:
    """Turn a page measurement into the skeleton document.

    Every in-viewport element becomes an empty tag carrying its original
    attributes. The ``<html>`` and ``<body>`` attributes are copied onto the
    wrapper.
    """

    html_attrs = (snapshot.get("html") or {}).get("attrs") or []
    body_attrs = (snapshot.get("body") or {}).get("attrs") or []

    parts = [_open_tag("html", html_attrs), "<head></head>", _open_tag("body", body_attrs)]
    kept = 0
    for box in _parse_elements(snapshot.get("elements")):
        rect = {"top": box.top, "left": box.left, "bottom": box.bottom, "right": box.right}
        if is_in_viewport(rect, viewport_width, viewport_height):
            parts.append(f"{_open_tag(box.tag, box.attrs)}</{box.tag}>")
            kept += 1
    parts.append("</body></html>")

    logger.debug("skeleton_built", elements=kept)
    return "".join(parts)
