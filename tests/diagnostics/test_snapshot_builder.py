# tests/diagnostics/test_snapshot_builder.py
import pytest
from bs4 import BeautifulSoup, Tag

from page_diagnostics.dom.builder import SnapshotBuilder, normalize_color
from page_diagnostics.dom.engine import analyze

SAMPLE_HTML = """<!DOCTYPE html>
<html>
<head>
  <title> Demo page </title>
  <link rel="stylesheet" href="site.css">
  <link rel="icon" href="favicon.ico">
  <script src="app.js"></script>
</head>
<body>
  <h1>Main</h1>
  <p>Plain</p>
  <p style="color: #333">Styled</p>
  <div style="background-color: white">Boxed</div>
  <a href="/">home</a>
  <form><input type="text"><input aria-label="Search"></form>
  <img src="logo.png">
</body>
</html>
"""


@pytest.fixture
def builder():
    return SnapshotBuilder()


def test_build_and_analyze_sample_page(builder):
    snapshot = builder.build("https://example.com/", SAMPLE_HTML, viewport=(1024, 768))
    report = analyze(snapshot)

    assert report.title == "Demo page"
    assert report.url == "https://example.com/"
    assert report.viewport.width == 1024
    # html, head, title, link x2, script, body, h1, p x2, div, a, form, input x2, img
    assert report.elements == 16
    assert report.images == 1
    assert report.links == 1
    assert report.forms == 1
    assert report.scripts == 1
    assert report.stylesheets == 1
    assert report.heading_counts[1] == 1
    assert report.accessibility.images_without_alt == 1
    assert report.accessibility.inputs_without_label == 1

    findings = report.accessibility.contrast_findings
    assert findings.scanned == 5
    # h1, the plain p and the link keep the default black-on-transparent pair
    assert findings.potential_issues == 3


def test_text_color_is_inherited_background_is_not(builder):
    html = '<html><body><div style="color: red; background-color: #fff"><span>t</span></div></body></html>'
    snapshot = builder.build("u", html)

    div = snapshot.root.children[0].children[0]
    span = div.children[0]
    assert div.color == "rgb(255, 0, 0)"
    assert div.background_color == "rgb(255, 255, 255)"
    assert span.color == "rgb(255, 0, 0)"
    assert span.background_color == "rgba(0, 0, 0, 0)"


def test_fragment_is_wrapped_in_html_root(builder):
    snapshot = builder.build("u", "<p>Hi</p><img src='x.png' alt='x'>")

    assert snapshot.root.tag == "html"
    assert [child.tag for child in snapshot.root.children] == ["p", "img"]
    assert analyze(snapshot).accessibility.images_without_alt == 0


@pytest.mark.parametrize("html", ["", "   \n"])
def test_empty_html_gives_empty_snapshot(builder, html):
    snapshot = builder.build("u", html)
    assert snapshot.root is None
    assert analyze(snapshot).elements == 0


def test_byte_order_mark_is_ignored(builder):
    snapshot = builder.build("u", "\ufeff<html><head><title>BOM</title></head></html>")
    assert snapshot.title == "BOM"


def test_timing_is_passed_through(builder):
    timing = {"navigationStart": 10, "domContentLoadedEventEnd": 60, "loadEventEnd": 110}
    report = analyze(builder.build("u", "<p>x</p>", timing=timing))
    assert report.timing.dom_ready_ms == 50
    assert report.timing.load_time_ms == 100


def test_multi_valued_attributes_are_joined(builder):
    snapshot = builder.build("u", '<link rel="preload stylesheet" href="a.css">')
    link = snapshot.root.children[0]
    assert link.attrs["rel"] == "preload stylesheet"
    assert analyze(snapshot).stylesheets == 0


@pytest.mark.parametrize("raw, expected", [
    ("#000", "rgb(0, 0, 0)"),
    ("#FFFFFF", "rgb(255, 255, 255)"),
    ("#12345680", "rgba(18, 52, 86, 0.502)"),
    ("black", "rgb(0, 0, 0)"),
    ("Transparent", "rgba(0, 0, 0, 0)"),
    ("rgba(0,0,0,0)", "rgba(0, 0, 0, 0)"),
    ("rgb(10 20 30 / 50%)", "rgba(10, 20, 30, 0.5)"),
    ("rgba(1, 2, 3, 1)", "rgb(1, 2, 3)"),
    (" HSL(0, 0%, 0%) ", "hsl(0, 0%, 0%)"),
])
def test_normalize_color(raw, expected):
    assert normalize_color(raw) == expected


def test_deeply_nested_document_builds_and_analyzes(builder):
    depth = 1500
    html = "<div>" * depth + "<h2>Deep</h2>" + "</div>" * depth
    snapshot = builder.build("about:deep", html)
    report = analyze(snapshot)

    # wrapper <html>, the divs and the heading
    assert report.elements == depth + 2
    assert report.accessibility.heading_structure.entries[0].text == "Deep"


def test_element_text_matches_get_text(builder):
    html = (
        "<html><body>"
        "<h1>Title <span>with <b>bold</b></span> tail</h1>"
        "<p>Before<script>var x = 1;</script>after<!-- note --></p>"
        "<ruby>漢<rt>kan</rt></ruby>"
        "</body></html>"
    )
    snapshot = builder.build("u", html)
    soup = BeautifulSoup(html, "html.parser")

    pairs = [(snapshot.root, soup.find("html"))]
    while pairs:
        element, tag = pairs.pop()
        assert element.text == tag.get_text(), element.tag
        child_tags = [child for child in tag.children if isinstance(child, Tag)]
        assert len(element.children) == len(child_tags)
        pairs.extend(zip(element.children, child_tags))
