from typing import Dict, Any, List, Callable, Optional, Set, Iterable
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TEXT_COLOR = "rgb(0, 0, 0)"
DEFAULT_BACKGROUND_COLOR = "rgba(0, 0, 0, 0)"


class InvalidSnapshotError(ValueError):
    """Raised when a document snapshot is not a well-formed element tree."""


def element_rule(codes: List[str]):
    """
    Decorator to declare which finding codes a specific element rule returns.
    Facilitates auto-discovery by the ElementRegistry.
    """
    def decorator(func):
        func.defined_codes = codes
        return func
    return decorator


class SnapshotElement(BaseModel):
    """
    A single element of a document snapshot, as captured by the host.

    `text` holds the element's full text content (descendants included), and the
    two color fields hold computed style values when the host supplied them.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tag: str
    attrs: Dict[str, Any] = Field(default_factory=dict)
    text: str = ""
    color: Optional[str] = None
    background_color: Optional[str] = Field(default=None, alias="backgroundColor")
    children: List['SnapshotElement'] = Field(default_factory=list)

    @field_validator('tag')
    @classmethod
    def normalize_tag(cls, v: str) -> str:
        tag = v.strip().lower()
        if not tag:
            raise ValueError("element tag must not be empty")
        return tag

    def has_attr(self, name: str) -> bool:
        """Attribute presence test; the value is irrelevant."""
        return name in self.attrs

    def attr_text(self, name: str) -> str:
        """Returns an attribute as a string, joining multi-valued attributes."""
        value = self.attrs.get(name)
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return " ".join(str(v) for v in value)
        return str(value)


# Rule signature: node -> list of finding codes
ElementRule = Callable[[SnapshotElement], List[str]]


class ElementDefinition:
    """
    Configuration object binding HTML tags to a count category and element rules.
    """

    def __init__(
            self,
            tag_names: Iterable[str],
            category: Optional[str] = None,
            rules: Optional[List[ElementRule]] = None,
            matcher: Optional[Callable[[SnapshotElement], bool]] = None,
            possible_codes: Optional[List[str]] = None
    ):
        self.tag_names = [t.lower() for t in tag_names]
        self.category = category
        self.rules = rules or []
        self.matcher = matcher

        # --- Auto-Discovery of Finding Codes ---
        final_codes: Set[str] = set(possible_codes or [])

        for rule in self.rules:
            if hasattr(rule, 'defined_codes'):
                final_codes.update(rule.defined_codes)

        self.codes = sorted(final_codes)

    def matches(self, node: SnapshotElement) -> bool:
        """True if this definition applies to the node (tag already matched)."""
        return self.matcher(node) if self.matcher else True


def build_element_tree(payload: Any) -> SnapshotElement:
    """
    Validates a nested element payload into a SnapshotElement tree.

    Nodes are validated one at a time and assembled bottom-up from an explicit
    stack, so the depth of the tree is bounded by neither the interpreter's
    recursion limit nor the validator's.

    Raises:
        InvalidSnapshotError: If a node is not a mapping, `children` is not a list,
            or a node is reachable more than once.
        pydantic.ValidationError: If a node's own fields do not validate.
    """
    built: Dict[int, SnapshotElement] = {}
    seen: Set[int] = set()
    stack = [(payload, False)]

    while stack:
        node, expanded = stack.pop()

        if isinstance(node, SnapshotElement):
            built[id(node)] = node
            continue
        if not isinstance(node, dict):
            raise InvalidSnapshotError(f"Element payload must be a mapping, got {type(node).__name__}")

        children = node.get("children") or []
        if not isinstance(children, list):
            raise InvalidSnapshotError(f"'children' must be a list, got {type(children).__name__}")

        if not expanded:
            if id(node) in seen:
                raise InvalidSnapshotError("Element payload is reachable more than once; not a tree")
            seen.add(id(node))
            stack.append((node, True))
            stack.extend((child, False) for child in children)
            continue

        fields = {key: value for key, value in node.items() if key != "children"}
        fields["children"] = [built[id(child)] for child in children]
        built[id(node)] = SnapshotElement.model_validate(fields)

    return built[id(payload)]
