"""
Typed CollectedData document and the partials assistant turns carry.

Stored JSON uses camelCase keys (``sportsCenterName``, ``adminEmail``...);
Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class Schedule(BaseModel):
    """Opening slot for a facility. ``weekdays`` uses 1 (Monday) .. 7 (Sunday)."""

    weekdays: List[int] = Field(default_factory=list)
    start_time: str
    end_time: str
    duration: int  # minutes per booking slot
    rate: float = 0.0

    model_config = {**_CAMEL, "extra": "ignore"}


class Facility(BaseModel):
    name: str
    sport_id: Optional[int] = None
    sport_name: Optional[str] = None
    schedules: List[Schedule] = Field(default_factory=list)

    model_config = {**_CAMEL, "extra": "ignore"}


class LastError(BaseModel):
    code: str
    message: str
    timestamp: datetime
    retry_count: int = 0

    model_config = _CAMEL


class CollectedDataPartial(BaseModel):
    """
    Fields an assistant turn may supply. ``None`` means "not mentioned".

    Tracker-owned fields (last error, escalation) are deliberately absent so a
    model response can never clear or forge them.
    """

    sports_center_name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    place_id: Optional[str] = None
    language: Optional[str] = None
    admin_name: Optional[str] = None
    admin_email: Optional[str] = None
    facilities: Optional[List[Facility]] = None
    confirmed: Optional[bool] = None

    model_config = {**_CAMEL, "extra": "ignore"}


class CollectedData(BaseModel):
    """Projection of a conversation's message stream into the creation form."""

    sports_center_name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    place_id: Optional[str] = None
    language: Optional[str] = None
    admin_name: Optional[str] = None
    admin_email: Optional[str] = None
    facilities: List[Facility] = Field(default_factory=list)
    confirmed: bool = False
    escalated_to_human: bool = False
    escalation_reason: Optional[str] = None
    last_error: Optional[LastError] = None

    model_config = {**_CAMEL, "extra": "ignore"}

    @classmethod
    def from_document(cls, document: Optional[dict]) -> "CollectedData":
        """Load the stored JSON document; a missing document is an empty form."""
        if not document:
            return cls()
        return cls.model_validate(document)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def retry_count(self) -> int:
        return self.last_error.retry_count if self.last_error else 0


class Readiness(BaseModel):
    """Answer to "is the record complete enough to attempt creation?"."""

    is_ready: bool
    confirmed: bool
    missing: List[str] = Field(default_factory=list)
    schedule_errors: List[str] = Field(default_factory=list)

    model_config = _CAMEL


class ScheduleSummary(BaseModel):
    weekdays: str
    hours: str
    duration: int
    rate: float


class FacilitySummary(BaseModel):
    name: str
    sport_name: Optional[str] = None
    schedules: List[ScheduleSummary] = Field(default_factory=list)

    model_config = _CAMEL


class ConfigurationSummary(BaseModel):
    """Human-readable rendering of the form for the confirmation step."""

    is_ready: bool
    sports_center_name: Optional[str] = None
    city: Optional[str] = None
    language: Optional[str] = None
    admin_name: Optional[str] = None
    admin_email: Optional[str] = None
    facilities: List[FacilitySummary] = Field(default_factory=list)
    confirmed: bool = False
    missing: List[str] = Field(default_factory=list)

    model_config = _CAMEL
