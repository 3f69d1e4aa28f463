"""Data models for timetable events and imports."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from ..core.timezone_utils import to_storage_iso


class SourceType(str, Enum):
    """Origin of an event; fixed at creation."""

    FEED = "feed"
    MANUAL = "manual"


class CanonicalEvent(BaseModel):
    """Normalized, storage-ready event from a feed or from manual entry."""

    uid: str = Field(..., min_length=1, description="Source UID or generated identifier")
    title: str = Field(..., min_length=1, description="Display title")
    start: datetime = Field(..., description="Start instant (timezone-aware)")
    end: datetime = Field(..., description="End instant (timezone-aware)")
    location: str = Field(default="", description="Location text, possibly empty")
    description: str = Field(default="", description="Description text, possibly empty")
    is_cancelled: bool = Field(default=False, description="Cancellation flag derived at parse time")
    source_type: SourceType = Field(..., description="feed or manual")
    import_id: Optional[int] = Field(default=None, description="Import that produced a feed event")

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_serializer("start", "end")
    def serialize_instant(self, dt: datetime) -> str:
        """Serialize instants to the storage ISO format."""
        return to_storage_iso(dt)

    @property
    def start_iso(self) -> str:
        """Start instant in storage format."""
        return to_storage_iso(self.start)

    @property
    def end_iso(self) -> str:
        """End instant in storage format."""
        return to_storage_iso(self.end)


class ImportRecord(BaseModel):
    """Provenance of one fetch-parse-replace operation."""

    id: int
    source_url: str
    imported_at: str

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class StoredEvent(BaseModel):
    """Persisted event augmented with display labels."""

    id: int
    import_id: Optional[int] = None
    source_type: SourceType
    uid: Optional[str] = None
    title: str
    start_iso: str
    end_iso: str
    location: str = ""
    description: str = ""
    is_cancelled: bool = False
    date_label: str
    time_label: str

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )


# Request bodies for the HTTP API


class ImportFeedRequest(BaseModel):
    """Body of POST /api/import/ical."""

    url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ManualEventRequest(BaseModel):
    """Body of POST /api/events/manual."""

    title: Optional[str] = None
    date: str
    start_time: str
    end_time: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
