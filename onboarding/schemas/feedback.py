"""Schemas for user feedback intake and the dashboard listing."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class FeedbackCreate(BaseModel):
    conversation_id: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    message: str = Field(min_length=1, max_length=5000)
    language: Optional[str] = Field(default=None, max_length=8)

    model_config = _CAMEL


class FeedbackRead(BaseModel):
    id: str
    conversation_id: Optional[str] = None
    rating: Optional[int] = None
    message: str
    language: Optional[str] = None
    created_at: datetime

    model_config = {**_CAMEL, "from_attributes": True}


class FeedbackStats(BaseModel):
    average_rating: float = 0.0
    total_ratings: int = 0

    model_config = _CAMEL
