# src/devtoolkit/model.py (Record Layer)
from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoredRecord(BaseModel):
    """
    Base for everything kept in a bounded record store.
    Every record carries its creation timestamp (UTC), used for ordering and age-based retention.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now, description="Creation time (UTC).")

    @field_validator('timestamp', mode='after')
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps (legacy data) are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class ColorEntry(StoredRecord):
    color: str = Field(description="The picked color as reported by the page, e.g. '#123456'.")

    @model_validator(mode='before')
    @classmethod
    def accept_bare_color(cls, data: Any) -> Any:
        """Older histories stored bare color strings without a timestamp."""
        if isinstance(data, str):
            return {"color": data}
        return data

    @field_validator('color')
    @classmethod
    def color_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("color must not be empty")
        return v


class CodeSnippet(StoredRecord):
    id: int = Field(description="Creation-time derived id (milliseconds), unique within the store.")
    language: str
    code: str
    title: str = "Untitled"

    @field_validator('title', mode='before')
    @classmethod
    def default_title(cls, v: Optional[str]) -> str:
        return v or "Untitled"


class AnalysisRecord(StoredRecord):
    """A trace of one page analysis, kept for the current session only."""
    tab_id: Optional[int] = None
    url: str = ""
    title: str = ""
    elements: int = 0


class Settings(BaseModel):
    """User preferences seeded on first install and synced across devices."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    theme: str = "light"
    auto_format: bool = True
