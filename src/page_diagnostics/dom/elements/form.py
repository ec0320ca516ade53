from typing import List
from ..core import SnapshotElement, ElementDefinition, element_rule


@element_rule(codes=["UNLABELLED_INPUT"])
def check_input_label(node: SnapshotElement) -> List[str]:
    """
    Rule: An input needs an accessible name via aria-label or aria-labelledby.
    A wrapping or for= <label> is not taken into account.
    """
    if not node.has_attr("aria-label") and not node.has_attr("aria-labelledby"):
        return ["UNLABELLED_INPUT"]
    return []


DEFINITIONS = [
    ElementDefinition(tag_names=["form"], category="forms"),
    ElementDefinition(tag_names=["input"], rules=[check_input_label]),
]
