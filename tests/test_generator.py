"""Tests for generator: template filters, layouts and the minify transform."""

import os
from datetime import date, datetime, timedelta, timezone

import pytest
from jinja2 import TemplateError

from config import BuildConfig, MinifyOptions
from generator import apply_transforms, create_environment, readable_date, render_page
from parser import normalize_page


@pytest.fixture
def cfg(tmp_path):
    includes = tmp_path / "src" / "_includes"
    includes.mkdir(parents=True)
    (includes / "layout.html").write_text(
        "<title>{{ title }}</title><main>{{ content }}</main>"
        "{% for link in collections.primary_nav %}<a href=\"{{ link.url }}\""
        "{% if link.url | is_current_url(page.url) %} class=\"active\"{% endif %}>{{ link.title }}</a>"
        "{% endfor %}",
        encoding="utf-8",
    )
    return BuildConfig.from_defaults(str(tmp_path))


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class TestReadableDate:
    def test_datetime(self):
        assert readable_date(datetime(2024, 3, 5, 23, 0)) == "05 Mar 2024"

    def test_date(self):
        assert readable_date(date(2023, 12, 1)) == "01 Dec 2023"

    def test_aware_datetime_shown_in_utc(self):
        value = datetime(2024, 3, 6, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert readable_date(value) == "05 Mar 2024"

    def test_missing(self):
        assert readable_date(None) == ""


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class TestRenderPage:
    def test_markdown_page_in_layout(self, cfg):
        page = normalize_page({"title": "About", "layout": "layout.html"}, url="/about/",
                              source_path="./src/about.md", body="# About *us*")
        nav = [{"title": "About", "url": "/about/"}, {"title": "Blog", "url": "/blog/"}]

        html = render_page(create_environment(cfg), page, {}, {"primary_nav": nav}, cfg)

        assert "<title>About</title>" in html
        assert "<main><h1>About <em>us</em></h1></main>" in html
        assert '<a href="/about/" class="active">About</a>' in html
        assert '<a href="/blog/">Blog</a>' in html

    def test_html_page_is_a_template(self, cfg):
        page = normalize_page({"title": "Team"}, url="/team/", source_path="./src/team.html",
                              body="<h1>{{ title }} at {{ site.name }}</h1>")
        html = render_page(create_environment(cfg), page, {"site": {"name": "Northwind"}}, {}, cfg)
        assert html == "<h1>Team at Northwind</h1>"

    def test_uppercase_markdown_extension(self, cfg):
        page = normalize_page({"title": "Notes"}, url="/notes/", source_path="./src/NOTES.MD",
                              body="*{{ title }}*")
        html = render_page(create_environment(cfg), page, {}, {}, cfg)
        assert html == "<p><em>{{ title }}</em></p>"

    def test_template_values_are_escaped(self, cfg):
        page = normalize_page({"title": "<b>x</b>"}, url="/x/", source_path="./src/x.html",
                              body="{{ title }}")
        html = render_page(create_environment(cfg), page, {}, {}, cfg)
        assert html == "&lt;b&gt;x&lt;/b&gt;"


# ---------------------------------------------------------------------------
# Layout chains
# ---------------------------------------------------------------------------

class TestLayoutChain:
    def _write_layout(self, cfg, name, text):
        with open(os.path.join(cfg.includes_dir, name), "w", encoding="utf-8") as f:
            f.write(text)

    def test_layout_front_matter_is_not_rendered(self, cfg):
        self._write_layout(cfg, "plain.html", "---\nsection: docs\n---\n<div>{{ content }}</div>")
        page = normalize_page({"title": "Hi", "layout": "plain.html"}, url="/hi/",
                              source_path="./src/hi.md", body="hi")
        html = render_page(create_environment(cfg), page, {}, {}, cfg)
        assert html == "<div><p>hi</p></div>"

    def test_inner_layout_wraps_in_parent(self, cfg):
        self._write_layout(cfg, "base.html", "<body>{{ content }}</body>")
        self._write_layout(cfg, "inner.html", "---\nlayout: base.html\n---\n<article>{{ content }}</article>")
        page = normalize_page({"title": "Hi", "layout": "inner.html"}, url="/hi/",
                              source_path="./src/hi.md", body="hi")
        html = render_page(create_environment(cfg), page, {}, {}, cfg)
        assert html == "<body><article><p>hi</p></article></body>"

    def test_layout_data_fills_missing_keys_only(self, cfg):
        self._write_layout(cfg, "tagged.html",
                           "---\nsection: docs\ntitle: Layout title\n---\n{{ section }}|{{ title }}")
        page = normalize_page({"title": "Page title", "layout": "tagged.html"}, url="/p/",
                              source_path="./src/p.md", body="")
        html = render_page(create_environment(cfg), page, {}, {}, cfg)
        assert html == "docs|Page title"

    def test_layout_cycle_raises_template_error(self, cfg):
        self._write_layout(cfg, "a.html", "---\nlayout: b.html\n---\n{{ content }}")
        self._write_layout(cfg, "b.html", "---\nlayout: a.html\n---\n{{ content }}")
        page = normalize_page({"title": "Loop", "layout": "a.html"}, url="/loop/",
                              source_path="./src/loop.md", body="x")
        with pytest.raises(TemplateError):
            render_page(create_environment(cfg), page, {}, {}, cfg)

    def test_missing_layout_raises_template_error(self, cfg):
        page = normalize_page({"title": "Lost", "layout": "missing.html"}, url="/lost/",
                              source_path="./src/lost.md", body="x")
        with pytest.raises(TemplateError):
            render_page(create_environment(cfg), page, {}, {}, cfg)


# ---------------------------------------------------------------------------
# Minify transform
# ---------------------------------------------------------------------------

class TestTransforms:
    SOURCE = "<!DOCTYPE html><html><head></head><body>\n  <!-- note -->\n  <p>  Hello   world  </p>\n</body></html>"

    def test_html_output_is_minified(self):
        result = apply_transforms(self.SOURCE, "_site/index.html", MinifyOptions())
        assert "<!-- note -->" not in result
        assert len(result) < len(self.SOURCE)
        assert "Hello world" in result

    def test_doctype_stays_valid(self):
        result = apply_transforms(self.SOURCE, "_site/index.html", MinifyOptions())
        assert result.startswith("<!doctype html>")
        assert "<!doctypehtml>" not in result

    def test_long_doctype_is_shortened(self):
        source = ('<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" '
                  '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd"><html><body><p>x</p></body></html>')
        result = apply_transforms(source, "_site/index.html", MinifyOptions())
        assert result.startswith("<!doctype html>")
        assert "xhtml1" not in result

    def test_doctype_kept_without_short_doctype(self):
        result = apply_transforms(self.SOURCE, "_site/index.html", MinifyOptions(use_short_doctype=False))
        assert result.startswith("<!DOCTYPE html>")

    def test_comments_can_be_kept(self):
        result = apply_transforms(self.SOURCE, "_site/index.html", MinifyOptions(remove_comments=False))
        assert "note" in result

    def test_non_html_output_untouched(self):
        assert apply_transforms(self.SOURCE, "_site/feed.xml", MinifyOptions()) == self.SOURCE

    def test_minify_disabled(self):
        options = MinifyOptions(collapse_whitespace=False)
        assert apply_transforms(self.SOURCE, "_site/index.html", options) == self.SOURCE
