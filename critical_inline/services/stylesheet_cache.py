"""Build-scoped cache of stylesheet contents keyed by href."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List

from critical_inline.core.errors import StylesheetNotFoundError
from critical_inline.core.logging import get_logger
from critical_inline.models.critical_css import StylesheetEntry

logger = get_logger(__name__)


class StylesheetCache:
    """Append-only stylesheet registry. Entries are never re-read once loaded."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: Dict[str, StylesheetEntry] = {}

    def get(self, stylesheet_id: str, output_dir: str | Path) -> str:
        """Return the content of ``stylesheet_id``, reading it from ``output_dir`` on first use."""

        with self._lock:
            entry = self._entries.get(stylesheet_id)
        if entry is not None:
            return entry.content

        content = self._read(stylesheet_id, output_dir)
        with self._lock:
            # Two pages may race on the same id; the first stored entry wins.
            entry = self._entries.setdefault(stylesheet_id, StylesheetEntry(id=stylesheet_id, content=content))
        return entry.content

    def combined(self, stylesheet_ids: Iterable[str]) -> str:
        """Concatenate cached contents in the given order, skipping unknown ids."""

        with self._lock:
            return "".join(self._entries[i].content for i in stylesheet_ids if i in self._entries)

    def entries(self) -> List[StylesheetEntry]:
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, stylesheet_id: object) -> bool:
        with self._lock:
            return stylesheet_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @staticmethod
    def resolve_path(stylesheet_id: str, output_dir: str | Path) -> Path:
        """Map an href such as ``/assets/app.css`` onto the output directory."""

        return Path(output_dir) / stylesheet_id.lstrip("/")

    def _read(self, stylesheet_id: str, output_dir: str | Path) -> str:
        path = self.resolve_path(stylesheet_id, output_dir)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise StylesheetNotFoundError(stylesheet_id, str(path)) from exc

        logger.debug("stylesheet_loaded", stylesheet_id=stylesheet_id, path=str(path), bytes=len(content))
        return content
