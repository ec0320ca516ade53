from typing import Optional
from ..core import SnapshotElement, ElementDefinition

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
MAX_HEADING_TEXT = 50


def heading_level(node: SnapshotElement) -> Optional[int]:
    """
    Determines the hierarchy level of a heading node (e.g., h1 -> 1).
    Returns None for anything that is not h1-h6.
    """
    if node.tag not in HEADING_TAGS:
        return None
    return int(node.tag[1])


def heading_text(node: SnapshotElement) -> str:
    """
    Stripped text content, cut to an exact prefix of MAX_HEADING_TEXT characters.
    No ellipsis is appended.
    """
    return node.text.strip()[:MAX_HEADING_TEXT]


# --- ELEMENT DEFINITION ---

DEFINITION = ElementDefinition(
    tag_names=HEADING_TAGS,
    category="headings"
)
