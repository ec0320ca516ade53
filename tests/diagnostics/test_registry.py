# tests/diagnostics/test_registry.py
from page_diagnostics.dom.core import SnapshotElement
from page_diagnostics.dom.registry import ElementRegistry


def test_discovery_loads_all_element_modules():
    ElementRegistry.discover()

    assert ElementRegistry.get_categories() == [
        "contrast_candidates", "forms", "headings", "images", "links", "scripts", "stylesheets",
    ]
    assert ElementRegistry.get_all_possible_codes() == ["DEFAULT_COLORS", "MISSING_ALT", "UNLABELLED_INPUT"]


def test_one_tag_can_have_several_definitions():
    ElementRegistry.discover()

    categories = {defn.category for defn in ElementRegistry.get_definitions("a")}
    assert categories == {"links", "contrast_candidates"}
    assert ElementRegistry.get_definitions("marquee") == []


def test_stylesheet_matcher_requires_exact_rel():
    ElementRegistry.discover()
    (definition,) = [d for d in ElementRegistry.get_definitions("link") if d.category == "stylesheets"]

    assert definition.matches(SnapshotElement(tag="link", attrs={"rel": "Stylesheet"}))
    assert not definition.matches(SnapshotElement(tag="link", attrs={"rel": "icon"}))
    assert not definition.matches(SnapshotElement(tag="link"))
