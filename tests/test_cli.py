"""Tests for the critical-inline command line host."""

from __future__ import annotations

import pytest

import critical_inline.cli as cli
from critical_inline.cli import EXIT_MISSING_OUTPUT_DIR, EXIT_OK, main, run_build

from conftest import FakeRenderer

PAGE = (
    '<html><head><link rel="stylesheet" href="/a.css"></head>'
    '<body><div class="hero">Hi</div><script src="/app.js"></script></body></html>'
)
HERO_SKELETON = '<html><head></head><body><div class="hero"></div></body></html>'


@pytest.fixture
def site(output_dir):
    (output_dir / "index.html").write_text(PAGE, encoding="utf-8")
    (output_dir / "blog").mkdir()
    (output_dir / "blog" / "post.html").write_text(PAGE, encoding="utf-8")
    return output_dir


class TestRunBuild:
    def test_rewrites_pages_in_place(self, site, options):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        assert run_build(options, renderer_factory=lambda: renderer) == EXIT_OK

        html = (site / "index.html").read_text(encoding="utf-8")
        assert "<style>.hero{color:red}" in html
        assert 'href="/a.css" media="print"' in html
        assert '<noscript><link rel="stylesheet" href="/a.css"></noscript>' in html
        assert html.endswith('<script type="module" src="/app.js" defer></script></body></html>')
        assert "<style>.hero{color:red}" in (site / "blog" / "post.html").read_text(encoding="utf-8")

    def test_browser_lifecycle(self, site, options):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        run_build(options, renderer_factory=lambda: renderer)

        assert renderer.launches == 1
        assert renderer.closes == 1
        assert len(renderer.pages) == 2

    def test_dry_run_leaves_files_alone(self, site, options):
        run_build(options, dry_run=True, renderer_factory=lambda: FakeRenderer(skeleton=HERO_SKELETON))
        assert (site / "index.html").read_text(encoding="utf-8") == PAGE

    def test_pattern_limits_pages(self, site, options):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        run_build(options, pattern="*.html", renderer_factory=lambda: renderer)

        assert len(renderer.pages) == 1
        assert (site / "blog" / "post.html").read_text(encoding="utf-8") == PAGE

    def test_failed_pages_are_not_rewritten(self, site, options):
        renderer = FakeRenderer()
        renderer.load_error = TimeoutError("never idle")

        assert run_build(options, renderer_factory=lambda: renderer) == EXIT_OK
        assert (site / "index.html").read_text(encoding="utf-8") == PAGE
        assert renderer.closes == 1


class TestMain:
    def test_missing_output_dir(self, tmp_path):
        assert main(["build", "--output-dir", str(tmp_path / "nope")]) == EXIT_MISSING_OUTPUT_DIR

    def test_arguments_reach_options(self, site, monkeypatch):
        captured = {}

        def _fake_run_build(options, pattern, dry_run):
            captured.update(options=options, pattern=pattern, dry_run=dry_run)
            return EXIT_OK

        monkeypatch.setattr(cli, "run_build", _fake_run_build)
        code = main(
            [
                "build",
                "--output-dir",
                str(site),
                "--viewport-width",
                "390",
                "--viewport-height",
                "844",
                "--timeout-ms",
                "1000",
                "--pattern",
                "*.html",
                "--dry-run",
            ]
        )

        assert code == EXIT_OK
        assert captured["options"].viewport_width == 390
        assert captured["options"].viewport_height == 844
        assert captured["options"].timeout_ms == 1000
        assert captured["options"].output_dir == str(site)
        assert captured["pattern"] == "*.html"
        assert captured["dry_run"] is True

    def test_defaults_come_from_settings(self, site, monkeypatch):
        captured = {}

        def _fake_run_build(options, pattern, dry_run):
            captured["options"] = options
            return EXIT_OK

        monkeypatch.setattr(cli, "run_build", _fake_run_build)
        main(["build", "--output-dir", str(site)])

        assert captured["options"].viewport_width == 1200
        assert captured["options"].viewport_height == 800
        assert captured["options"].timeout_ms == 30_000

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            main([])
