from typing import List
from ..core import SnapshotElement, ElementDefinition, element_rule


# --- RULES ---

@element_rule(codes=["MISSING_ALT"])
def check_alt_present(node: SnapshotElement) -> List[str]:
    # alt="" marks a decorative image and counts as present
    if not node.has_attr("alt"):
        return ["MISSING_ALT"]
    return []


# --- DEFINITION ---
DEFINITION = ElementDefinition(
    tag_names=["img"],
    category="images",
    rules=[check_alt_present]
)
