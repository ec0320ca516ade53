from typing import List
from ..core import (
    SnapshotElement,
    ElementDefinition,
    element_rule,
    DEFAULT_TEXT_COLOR,
    DEFAULT_BACKGROUND_COLOR,
)

CONTRAST_CANDIDATE_TAGS = ["p", "span", "div", "a", "button", "h1", "h2", "h3", "h4", "h5", "h6"]


@element_rule(codes=["DEFAULT_COLORS"])
def check_default_colors(node: SnapshotElement) -> List[str]:
    """
    Rule: Flags text that never received explicit styling.

    This is a coarse stand-in for a contrast check: only the exact pair
    black-on-transparent is reported, no luminance ratio is computed.
    Elements without computed style values are never flagged.
    """
    if node.color == DEFAULT_TEXT_COLOR and node.background_color == DEFAULT_BACKGROUND_COLOR:
        return ["DEFAULT_COLORS"]
    return []


DEFINITION = ElementDefinition(
    tag_names=CONTRAST_CANDIDATE_TAGS,
    category="contrast_candidates",
    rules=[check_default_colors]
)
