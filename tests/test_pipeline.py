"""End-to-end tests for the per-page critical CSS pipeline."""

from __future__ import annotations

import pytest

from critical_inline.core.errors import RenderError, RenderTimeoutError
from critical_inline.models.critical_css import InjectionTag, PageContext, RewriteSuccess, RewriteUnchanged
from critical_inline.services.critical_css import CriticalCssPipeline
from critical_inline.services.rewriter import MarkupRewriter
from critical_inline.services.stylesheet_cache import StylesheetCache

from conftest import FakeRenderer

PAGE_A = '<head><link rel="stylesheet" href="a.css"></head><body><div class="hero">Hi</div></body>'
HERO_SKELETON = '<html><head></head><body><div class="hero"></div></body></html>'
CONTEXT = PageContext(filename="index.html")


@pytest.fixture
def pipeline(options):
    return CriticalCssPipeline(options, cache=StylesheetCache())


class TestScenarios:
    def test_hero_page_gets_critical_css_and_deferred_link(self, pipeline):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        outcome = pipeline.process(PAGE_A, renderer, CONTEXT)

        assert isinstance(outcome, RewriteSuccess)
        assert "<style>.hero{color:red}" in outcome.html
        assert outcome.html.index("<style>") < outcome.html.index('<link rel="stylesheet" href="a.css"')
        assert 'href="a.css" media="print"' in outcome.html
        assert "unused" not in outcome.html
        assert outcome.tags == [
            InjectionTag(
                tag="noscript",
                children=[InjectionTag(tag="link", attrs={"rel": "stylesheet", "href": "a.css"})],
                inject_to="body",
            )
        ]

    def test_page_without_stylesheets(self, pipeline):
        html = "<head><title>t</title></head><body><p>Hi</p></body>"
        outcome = pipeline.process(html, FakeRenderer(), CONTEXT)

        assert isinstance(outcome, RewriteSuccess)
        assert outcome.html == html
        assert outcome.tags == [InjectionTag(tag="style", children="", inject_to="head-prepend")]

    def test_body_script_is_deferred(self, pipeline):
        html = '<head></head><body><main></main><script src="app.js"></script></body>'
        outcome = pipeline.process(html, FakeRenderer(), CONTEXT)

        assert '<script src="app.js">' not in outcome.html
        assert (
            InjectionTag(
                tag="script",
                attrs={"type": "module", "src": "app.js", "defer": True},
                inject_to="body",
            )
            in outcome.tags
        )


class TestInjectedCollaborators:
    def test_empty_injected_cache_is_used(self, options):
        cache = StylesheetCache()
        pipeline = CriticalCssPipeline(options, cache=cache)

        assert pipeline.cache is cache
        assert pipeline.inliner.cache is cache
        assert pipeline.purger.cache is cache

        pipeline.process(PAGE_A, FakeRenderer(skeleton=HERO_SKELETON), CONTEXT)
        assert [entry.id for entry in cache.entries()] == ["a.css"]

    def test_injected_rewriter_is_used(self, options):
        rewriter = MarkupRewriter()
        assert CriticalCssPipeline(options, rewriter=rewriter).rewriter is rewriter


class TestRendererInteraction:
    def test_renderer_sees_inlined_page_with_configured_viewport(self, pipeline, options):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        pipeline.process(PAGE_A, renderer, CONTEXT)

        html, timeout_ms = renderer.loaded[0]
        assert "<style>.hero{color:red}.unused{color:blue}</style>" in html
        assert "<link" not in html
        assert timeout_ms == options.timeout_ms
        assert renderer.viewports == [(1200, 800)]
        assert renderer.measured == [(1200, 800)]

    def test_page_is_closed_after_run(self, pipeline):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        pipeline.process(PAGE_A, renderer, CONTEXT)
        assert renderer.pages[0].closed

    def test_rewrite_applies_to_original_not_inlined_html(self, pipeline):
        outcome = pipeline.process(PAGE_A, FakeRenderer(skeleton=HERO_SKELETON), CONTEXT)
        assert ".unused{color:blue}" not in outcome.html

    def test_stylesheet_read_once_across_pages(self, pipeline, output_dir):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        first = pipeline.process(PAGE_A, renderer, CONTEXT)
        (output_dir / "a.css").unlink()
        second = pipeline.process(PAGE_A, renderer, PageContext(filename="about.html"))

        assert isinstance(second, RewriteSuccess)
        assert first.html == second.html


# ── Fallback ─────────────────────────────────────────────────────────


class TestFallback:
    @pytest.mark.parametrize(
        "attribute, error",
        [
            ("page_error", RenderError("no page")),
            ("load_error", RenderTimeoutError("not idle")),
            ("measure_error", RenderError("evaluation threw")),
            ("measure_error", RuntimeError("unexpected")),
        ],
    )
    def test_render_failures_return_original_html(self, pipeline, attribute, error):
        renderer = FakeRenderer(skeleton=HERO_SKELETON)
        setattr(renderer, attribute, error)

        outcome = pipeline.process(PAGE_A, renderer, CONTEXT)

        assert isinstance(outcome, RewriteUnchanged)
        assert outcome.html == PAGE_A
        assert outcome.tags == []
        assert type(error).__name__ in outcome.reason

    def test_missing_stylesheet_returns_original_html(self, pipeline):
        html = '<head><link rel="stylesheet" href="missing.css"></head><body></body>'
        outcome = pipeline.process(html, FakeRenderer(), CONTEXT)

        assert isinstance(outcome, RewriteUnchanged)
        assert outcome.html == html
        assert "StylesheetNotFoundError" in outcome.reason

    def test_page_closed_even_when_measurement_fails(self, pipeline):
        renderer = FakeRenderer()
        renderer.measure_error = RenderError("boom")
        pipeline.process(PAGE_A, renderer, CONTEXT)

        assert renderer.pages[0].closed
