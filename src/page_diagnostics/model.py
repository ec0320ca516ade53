from types import MappingProxyType
from typing import Optional, Dict, Any, Mapping, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    """
    Base for report value types: immutable, snake_case in Python and
    camelCase on the wire (e.g. 'images_without_alt' -> 'imagesWithoutAlt').
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """Serializes the value into the structure handed to the report consumer."""
        return self.model_dump(mode="json", by_alias=True)


class ViewportSize(ReportModel):
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)


class PageTiming(ReportModel):
    """Load timings relative to navigation start; a field is None when its data was unusable."""
    load_time_ms: Optional[int] = Field(default=None, ge=0)
    dom_ready_ms: Optional[int] = Field(default=None, ge=0)


class HeadingEntry(ReportModel):
    level: int = Field(ge=1, le=6)
    text: str = Field(default="", max_length=50)


class HeadingStructure(ReportModel):
    total: int = 0
    has_h1: bool = False
    multiple_h1: bool = False
    entries: Tuple[HeadingEntry, ...] = ()


class ContrastFindings(ReportModel):
    scanned: int = 0
    potential_issues: int = 0


class AccessibilityReport(ReportModel):
    images_without_alt: int = 0
    inputs_without_label: int = 0
    heading_structure: HeadingStructure = Field(default_factory=HeadingStructure)
    contrast_findings: ContrastFindings = Field(default_factory=ContrastFindings)


def _empty_heading_counts() -> Mapping[int, int]:
    return MappingProxyType({level: 0 for level in range(1, 7)})


class PageReport(ReportModel):
    """
    Structured diagnostics for a single document snapshot.

    Produced once per analysis request and never stored by the engine;
    persisting it (or facts derived from it) is up to the caller.
    """
    # Identity
    title: str = ""
    url: str = ""

    # Structural counts
    elements: int = Field(default=0, ge=0)
    images: int = Field(default=0, ge=0)
    links: int = Field(default=0, ge=0)
    forms: int = Field(default=0, ge=0)
    scripts: int = Field(default=0, ge=0)
    stylesheets: int = Field(default=0, ge=0)
    heading_counts: Mapping[int, int] = Field(default_factory=_empty_heading_counts)

    viewport: ViewportSize = Field(default_factory=ViewportSize)
    timing: Optional[PageTiming] = None
    accessibility: AccessibilityReport = Field(default_factory=AccessibilityReport)

    @field_validator('heading_counts', mode='after')
    @classmethod
    def read_only_counts(cls, v: Mapping[int, int]) -> Mapping[int, int]:
        return MappingProxyType(dict(v))

    @field_serializer('heading_counts')
    def dump_counts(self, v: Mapping[int, int]) -> Dict[int, int]:
        return dict(v)
