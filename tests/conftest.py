"""Shared test configuration and fixtures."""

from contextlib import contextmanager

import pytest

from critical_inline.models.critical_css import CriticalCssOptions


class FakePage:
    """Stands in for a rendered page: returns a canned skeleton."""

    def __init__(self, renderer):
        self.renderer = renderer
        self.loaded_html = None
        self.closed = False

    def load_html(self, html, timeout_ms):
        if self.renderer.load_error is not None:
            raise self.renderer.load_error
        self.loaded_html = html
        self.renderer.loaded.append((html, timeout_ms))

    def measure_viewport_skeleton(self, viewport_width, viewport_height):
        if self.renderer.measure_error is not None:
            raise self.renderer.measure_error
        self.renderer.measured.append((viewport_width, viewport_height))
        return self.renderer.skeleton


class FakeRenderer:
    """Records the lifecycle calls a BrowserRenderer would receive."""

    def __init__(self, skeleton="<html><head></head><body></body></html>"):
        self.skeleton = skeleton
        self.launch_error = None
        self.load_error = None
        self.measure_error = None
        self.page_error = None
        self.launches = 0
        self.closes = 0
        self.pages = []
        self.viewports = []
        self.loaded = []
        self.measured = []

    def launch(self):
        if self.launch_error is not None:
            raise self.launch_error
        self.launches += 1

    def close(self):
        self.closes += 1

    @contextmanager
    def new_page(self, viewport_width, viewport_height):
        if self.page_error is not None:
            raise self.page_error
        self.viewports.append((viewport_width, viewport_height))
        page = FakePage(self)
        self.pages.append(page)
        try:
            yield page
        finally:
            page.closed = True


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def output_dir(tmp_path):
    """A built site directory holding a couple of stylesheets."""

    site = tmp_path / "_site"
    (site / "assets").mkdir(parents=True)
    (site / "a.css").write_text(".hero{color:red}.unused{color:blue}", encoding="utf-8")
    (site / "assets" / "app.css").write_text("body{margin:0}.nav{display:flex}", encoding="utf-8")
    return site


@pytest.fixture
def options(output_dir):
    return CriticalCssOptions(
        viewport_width=1200,
        viewport_height=800,
        output_dir=str(output_dir),
        timeout_ms=5_000,
    )
