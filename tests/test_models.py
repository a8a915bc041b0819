"""Tests for design2code.models: Viewport, Document, IterationRun."""

from __future__ import annotations

import pytest

from design2code.models import (
    DiffResult,
    Document,
    Iteration,
    IterationRun,
    Viewport,
)
from design2code.raster import RasterImage


class TestViewport:

    def test_sizes(self):
        assert Viewport.DESKTOP.size == (1920, 1080)
        assert Viewport.TABLET.size == (768, 1024)
        assert Viewport.MOBILE.size == (375, 812)
        assert Viewport.MOBILE.width == 375
        assert Viewport.MOBILE.height == 812

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("mobile", Viewport.MOBILE),
            ("Tablet", Viewport.TABLET),
            (" desktop ", Viewport.DESKTOP),
            ("watch", Viewport.DESKTOP),
            ("", Viewport.DESKTOP),
            (None, Viewport.DESKTOP),
        ],
    )
    def test_resolve(self, name, expected):
        assert Viewport.resolve(name) is expected


class TestDocument:

    def test_fragment_wrapped_in_shell(self):
        html = Document("<div>Hi</div>", "div { color: red; }").to_html()
        assert html.startswith("<!DOCTYPE html>")
        assert "<style>div { color: red; }</style>" in html
        assert "<body>\n<div>Hi</div>\n</body>" in html

    def test_full_document_gets_style_before_head_close(self):
        markup = "<!DOCTYPE html><html><head><title>t</title></head><body>x</body></html>"
        html = Document(markup, "p{}").to_html()
        assert html.count("<html") == 1
        assert "<title>t</title><style>p{}</style></head>" in html

    def test_full_document_without_head_gets_style_prepended(self):
        markup = "<html><body>x</body></html>"
        assert Document(markup, "p{}").to_html() == "<style>p{}</style>" + markup

    def test_with_stylesheet_keeps_markup(self):
        doc = Document("<p>x</p>", "a{}")
        updated = doc.with_stylesheet("b{}")
        assert updated.markup == doc.markup
        assert updated.stylesheet == "b{}"
        assert doc.stylesheet == "a{}"


def _iteration(index: int, pct):
    diff = None
    if pct is not None:
        diff = DiffResult(pct, RasterImage.solid(1, 1, (255, 255, 255, 255)), 0, 1)
    return Iteration(index=index, document=Document("", ""), screenshot=b"", diff=diff)


class TestIterationRunBest:

    def test_lowest_diff_wins(self):
        run = IterationRun([_iteration(1, 40.0), _iteration(2, 12.0), _iteration(3, 18.0)])
        assert run.best().index == 2

    def test_ties_pick_earliest(self):
        run = IterationRun([_iteration(1, 20.0), _iteration(2, 20.0)])
        assert run.best().index == 1

    def test_synthetic_records_are_skipped(self):
        run = IterationRun([_iteration(1, 30.0), _iteration(2, None)])
        assert run.best().index == 1

    def test_only_synthetic_returns_last(self):
        run = IterationRun([_iteration(1, None)])
        assert run.best().index == 1

    def test_empty(self):
        assert IterationRun().best() is None
