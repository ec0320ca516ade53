from ..core import SnapshotElement, ElementDefinition


def is_stylesheet(node: SnapshotElement) -> bool:
    """Matches link[rel="stylesheet"]: the rel value must be exactly 'stylesheet'."""
    return node.attr_text("rel").strip().lower() == "stylesheet"


DEFINITIONS = [
    ElementDefinition(tag_names=["script"], category="scripts"),
    ElementDefinition(tag_names=["link"], category="stylesheets", matcher=is_stylesheet),
]
