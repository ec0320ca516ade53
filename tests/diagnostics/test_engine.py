# tests/diagnostics/test_engine.py
import pytest
from pydantic import ValidationError

from page_diagnostics.dom.core import SnapshotElement, InvalidSnapshotError
from page_diagnostics.dom.engine import DiagnosticsEngine, analyze
from page_diagnostics.dom.models import DocumentSnapshot, NavigationTiming, Viewport

BLACK = "rgb(0, 0, 0)"
TRANSPARENT = "rgba(0, 0, 0, 0)"


def el(tag, *children, **kwargs):
    """Small helper to keep snapshot trees readable."""
    return SnapshotElement(tag=tag, children=list(children), **kwargs)


def page(*body_children, **kwargs):
    return DocumentSnapshot(root=el("html", el("body", *body_children)), **kwargs)


@pytest.fixture
def engine():
    return DiagnosticsEngine()


def test_empty_snapshot_reports_all_zero(engine):
    """A document without elements yields zeros and false flags, not an error."""
    report = engine.analyze(DocumentSnapshot())

    assert report.elements == 0
    assert report.images == report.links == report.forms == 0
    assert report.scripts == report.stylesheets == 0
    assert report.heading_counts == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0, 6: 0}
    assert report.timing is None

    a11y = report.accessibility
    assert a11y.images_without_alt == 0
    assert a11y.inputs_without_label == 0
    assert a11y.heading_structure.total == 0
    assert a11y.heading_structure.has_h1 is False
    assert a11y.heading_structure.multiple_h1 is False
    assert a11y.heading_structure.entries == ()
    assert a11y.contrast_findings.scanned == 0
    assert a11y.contrast_findings.potential_issues == 0


def test_images_without_alt_tests_attribute_presence(engine):
    """Three images, one without alt: an empty alt still counts as present."""
    snapshot = page(
        el("img", attrs={"src": "a.png", "alt": "Logo"}),
        el("img", attrs={"src": "b.png", "alt": ""}),
        el("img", attrs={"src": "c.png"}),
    )
    report = engine.analyze(snapshot)

    assert report.elements == 5
    assert report.images == 3
    assert report.accessibility.images_without_alt == 1


def test_structural_counts(engine):
    snapshot = DocumentSnapshot(
        title="Counts",
        url="https://example.com/",
        root=el(
            "html",
            el(
                "head",
                el("link", attrs={"rel": "stylesheet", "href": "a.css"}),
                el("link", attrs={"rel": ["stylesheet"], "href": "b.css"}),
                el("link", attrs={"rel": "alternate stylesheet", "href": "c.css"}),
                el("link", attrs={"rel": "icon", "href": "favicon.ico"}),
                el("script", attrs={"src": "app.js"}),
            ),
            el(
                "body",
                el("a", attrs={"href": "/"}),
                el("a"),
                el("form", el("input", attrs={"type": "text"})),
                el("script"),
            ),
        ),
    )
    report = engine.analyze(snapshot)

    assert report.title == "Counts"
    assert report.url == "https://example.com/"
    assert report.elements == 13
    assert report.links == 2
    assert report.forms == 1
    assert report.scripts == 2
    assert report.stylesheets == 2


def test_inputs_without_label(engine):
    snapshot = page(
        el("input"),
        el("input", attrs={"aria-label": "Search"}),
        el("input", attrs={"aria-labelledby": "lbl"}),
        el("input", attrs={"aria-label": ""}),
        el("textarea"),
    )
    report = engine.analyze(snapshot)
    assert report.accessibility.inputs_without_label == 1


@pytest.mark.parametrize("length", [49, 50, 51])
def test_heading_text_is_cut_to_fifty_characters(engine, length):
    text = "x" * (length - 1) + "y"
    report = engine.analyze(page(el("h2", text=f"  {text}  ")))

    entry = report.accessibility.heading_structure.entries[0]
    assert len(entry.text) == min(length, 50)
    assert entry.text == text[:50]


@pytest.mark.parametrize("h1_count, expected", [(0, False), (1, False), (2, True), (3, True)])
def test_multiple_h1_flag(engine, h1_count, expected):
    headings = [el("h1", text=f"Title {i}") for i in range(h1_count)]
    report = engine.analyze(page(*headings, el("h2", text="Sub")))

    structure = report.accessibility.heading_structure
    assert structure.multiple_h1 is expected
    assert structure.has_h1 is (h1_count > 0)
    assert report.heading_counts[1] == h1_count


def test_heading_entries_follow_document_order(engine):
    snapshot = page(
        el("h1", text="Top"),
        el("section", el("h3", text="Deep"), el("h2", text="Mid")),
        el("h6", text="Last"),
    )
    report = engine.analyze(snapshot)

    entries = report.accessibility.heading_structure.entries
    assert [(e.level, e.text) for e in entries] == [(1, "Top"), (3, "Deep"), (2, "Mid"), (6, "Last")]
    assert report.accessibility.heading_structure.total == 4
    assert report.heading_counts == {1: 1, 2: 1, 3: 1, 4: 0, 5: 0, 6: 1}


def test_contrast_heuristic_flags_only_default_colors(engine):
    snapshot = page(
        el("p", color=BLACK, background_color=TRANSPARENT),
        el("div", color=BLACK, background_color=TRANSPARENT),
        el("span", color="rgb(255, 0, 0)", background_color=TRANSPARENT),
        el("button", color=BLACK, background_color="rgb(255, 255, 255)"),
        el("a"),  # no computed style at all
        el("img", color=BLACK, background_color=TRANSPARENT),  # not a text candidate
    )
    report = engine.analyze(snapshot)

    findings = report.accessibility.contrast_findings
    assert findings.scanned == 5
    assert findings.potential_issues == 2


def test_timing_durations():
    snapshot = DocumentSnapshot(
        timing=NavigationTiming(navigation_start=1000, dom_content_loaded_event_end=1500, load_event_end=2250)
    )
    report = analyze(snapshot)
    assert report.timing.load_time_ms == 1250
    assert report.timing.dom_ready_ms == 500


def test_negative_timing_field_is_absent():
    """loadEventEnd is still 0 while the page loads; that duration is dropped, not reported negative."""
    snapshot = DocumentSnapshot(
        timing=NavigationTiming(navigation_start=1000, dom_content_loaded_event_end=1400, load_event_end=0)
    )
    report = analyze(snapshot)
    assert report.timing.load_time_ms is None
    assert report.timing.dom_ready_ms == 400


def test_unusable_timing_is_absent():
    snapshot = DocumentSnapshot(
        timing=NavigationTiming(navigation_start=5000, dom_content_loaded_event_end=0, load_event_end=0)
    )
    assert analyze(snapshot).timing is None


def test_viewport_is_copied():
    report = analyze(DocumentSnapshot(viewport=Viewport(width=1280, height=720)))
    assert (report.viewport.width, report.viewport.height) == (1280, 720)


def test_analyze_is_deterministic(engine):
    snapshot = page(
        el("h1", text="Hello"),
        el("img"),
        el("p", color=BLACK, background_color=TRANSPARENT),
        title="Same",
    )
    first = engine.analyze(snapshot)
    second = engine.analyze(snapshot)

    assert first == second
    assert first.to_payload() == second.to_payload()


def test_report_is_immutable(engine):
    report = engine.analyze(page(el("img")))
    with pytest.raises(ValidationError):
        report.images = 10


def test_report_collections_are_read_only(engine):
    report = engine.analyze(page(el("h1", text="Only")))

    with pytest.raises(TypeError):
        report.heading_counts[1] = 5
    with pytest.raises(AttributeError):
        report.accessibility.heading_structure.entries.append(None)
    assert report.heading_counts[1] == 1
    assert len(report.accessibility.heading_structure.entries) == 1


def test_report_payload_uses_camel_case(engine):
    payload = engine.analyze(page(el("h1", text="A"), el("img"))).to_payload()

    assert payload["accessibility"]["imagesWithoutAlt"] == 1
    assert payload["accessibility"]["headingStructure"]["hasH1"] is True
    assert payload["accessibility"]["contrastFindings"]["potentialIssues"] == 0
    assert sorted(int(level) for level in payload["headingCounts"]) == [1, 2, 3, 4, 5, 6]


def test_non_snapshot_input_is_rejected(engine):
    with pytest.raises(InvalidSnapshotError):
        engine.analyze({"root": {"tag": "html"}})


def test_shared_node_is_not_a_tree(engine):
    shared = el("span")
    snapshot = page(el("div", shared), el("div", shared))
    with pytest.raises(InvalidSnapshotError):
        engine.analyze(snapshot)


def test_from_payload_accepts_host_shape():
    payload = {
        "title": "Host",
        "url": "https://example.com/a",
        "viewport": {"width": 800, "height": 600},
        "timing": {"navigationStart": 100, "domContentLoadedEventEnd": 150, "loadEventEnd": 300},
        "root": {
            "tag": "HTML",
            "children": [
                {"tag": "BODY", "children": [
                    {"tag": "IMG", "attrs": {"src": "x.png"}},
                    {"tag": "P", "color": BLACK, "backgroundColor": TRANSPARENT, "text": "hi"},
                ]},
            ],
        },
    }
    report = analyze(DocumentSnapshot.from_payload(payload))

    assert report.elements == 4
    assert report.images == 1
    assert report.accessibility.images_without_alt == 1
    assert report.accessibility.contrast_findings.potential_issues == 1
    assert report.timing.load_time_ms == 200
    assert report.timing.dom_ready_ms == 50


@pytest.mark.parametrize("payload", [
    [],
    {"root": {"tag": ""}},
    {"root": {"children": []}},
    {"viewport": {"width": -1, "height": 10}},
    {"root": {"tag": "html", "children": "not-a-list"}},
])
def test_from_payload_rejects_malformed_snapshots(payload):
    with pytest.raises(InvalidSnapshotError):
        DocumentSnapshot.from_payload(payload)


def test_deep_documents_do_not_hit_recursion_limit(engine):
    node = el("span")
    for _ in range(3000):
        node = el("div", node)
    report = engine.analyze(DocumentSnapshot(root=node))
    assert report.elements == 3001


def test_from_payload_accepts_deep_trees():
    depth = 1500
    node = {"tag": "h3", "text": "Bottom"}
    for _ in range(depth):
        node = {"tag": "div", "children": [node]}

    report = analyze(DocumentSnapshot.from_payload({"root": {"tag": "html", "children": [node]}}))

    assert report.elements == depth + 2
    assert report.heading_counts[3] == 1


def test_from_payload_rejects_shared_nodes():
    shared = {"tag": "span"}
    payload = {"root": {"tag": "html", "children": [{"tag": "div", "children": [shared]}, shared]}}
    with pytest.raises(InvalidSnapshotError):
        DocumentSnapshot.from_payload(payload)
