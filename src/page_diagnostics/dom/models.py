# src/page_diagnostics/dom/models.py
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .core import SnapshotElement, InvalidSnapshotError, build_element_tree


class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)


class NavigationTiming(BaseModel):
    """Raw navigation timestamps (milliseconds since epoch) reported by the host."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    navigation_start: int = 0
    dom_content_loaded_event_end: int = 0
    load_event_end: int = 0


class DocumentSnapshot(BaseModel):
    """
    Represents a read-only, point-in-time view of a document.

    This model is the single input of the diagnostics engine: the element tree
    (rooted at <html>), document-level identity, the viewport size and, when
    the host exposes it, the navigation timing.
    """
    model_config = ConfigDict(frozen=True)

    title: str = ""
    url: str = ""
    viewport: Viewport = Field(default_factory=Viewport)
    timing: Optional[NavigationTiming] = None

    # The DOM Tree Structure
    root: Optional[SnapshotElement] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DocumentSnapshot":
        """
        Validates a host-provided payload into a snapshot.

        The element tree is validated node by node (see build_element_tree),
        so deep documents are accepted.

        Raises:
            InvalidSnapshotError: If the payload is not a well-formed snapshot.
        """
        if not isinstance(payload, dict):
            raise InvalidSnapshotError(f"Snapshot payload must be a mapping, got {type(payload).__name__}")
        root_payload = payload.get("root")
        try:
            document = cls.model_validate({key: value for key, value in payload.items() if key != "root"})
            root = build_element_tree(root_payload) if root_payload is not None else None
        except ValidationError as e:
            raise InvalidSnapshotError(f"Malformed snapshot: {e}") from e
        return document.model_copy(update={"root": root})
