"""Critical CSS command line entrypoint.

Usage:
    critical-inline build [--output-dir DIR] [--viewport-width N] [--viewport-height N]
                          [--timeout-ms N] [--pattern GLOB] [--dry-run] [--log-level LEVEL]

Post-processes an already built site in place: every HTML page gets its
critical CSS inlined and its stylesheets and scripts deferred.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from critical_inline.core.config import settings
from critical_inline.core.logging import configure_logging, get_logger
from critical_inline.hooks.build_hook import BUILD_COMMAND, CriticalCssBuildHook
from critical_inline.models.critical_css import CriticalCssOptions, PageContext, RewriteSuccess
from critical_inline.services.injector import apply_injection_tags
from critical_inline.services.renderer import BrowserRenderer

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_MISSING_OUTPUT_DIR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="critical-inline", description=__doc__.splitlines()[0])
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Inline critical CSS into every page of a built site")
    build.add_argument("--output-dir", default=None, help=f"Built site directory (default: {settings.output_dir})")
    build.add_argument("--viewport-width", type=int, default=None)
    build.add_argument("--viewport-height", type=int, default=None)
    build.add_argument("--timeout-ms", type=int, default=None, help="Page settle timeout in milliseconds")
    build.add_argument("--pattern", default="**/*.html", help="Glob of pages, relative to the output directory")
    build.add_argument("--dry-run", action="store_true", help="Process pages without writing them back")
    build.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser


def _collect_pages(output_dir: Path, pattern: str) -> List[Path]:
    return sorted(path for path in output_dir.glob(pattern) if path.is_file())


def run_build(
    options: CriticalCssOptions,
    pattern: str = "**/*.html",
    dry_run: bool = False,
    renderer_factory: Callable[[], BrowserRenderer] = BrowserRenderer,
) -> int:
    """Run the build hook lifecycle over every page under ``options.output_dir``."""

    output_dir = Path(options.output_dir)
    if not output_dir.is_dir():
        logger.error("output_dir_missing", output_dir=str(output_dir))
        return EXIT_MISSING_OUTPUT_DIR

    pages = _collect_pages(output_dir, pattern)
    hook = CriticalCssBuildHook(options, renderer_factory=renderer_factory)
    hook.config(BUILD_COMMAND)

    rewritten = 0
    try:
        for path in pages:
            html = path.read_text(encoding="utf-8")
            filename = path.relative_to(output_dir).as_posix()
            outcome = hook.transform_index_html(html, PageContext(filename=filename))
            if not isinstance(outcome, RewriteSuccess):
                continue
            rewritten += 1
            if not dry_run:
                path.write_text(apply_injection_tags(outcome.html, outcome.tags), encoding="utf-8")
    finally:
        hook.close_bundle()

    logger.info(
        "build_completed",
        pages=len(pages),
        rewritten=rewritten,
        unchanged=len(pages) - rewritten,
        dry_run=dry_run,
    )
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)

    options = CriticalCssOptions.from_settings(
        output_dir=args.output_dir,
        viewport_width=args.viewport_width,
        viewport_height=args.viewport_height,
        timeout_ms=args.timeout_ms,
    )
    return run_build(options, pattern=args.pattern, dry_run=args.dry_run)


if __name__ == "__main__":
    sys.exit(main())
