"""Dashboard metrics payload. Serialized with camelCase keys."""

from __future__ import annotations

import datetime as dt
from typing import Dict, List

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class Totals(BaseModel):
    today: int = 0
    this_week: int = 0
    all_time: int = 0
    period: int = 0

    model_config = _CAMEL


class StatusBreakdown(BaseModel):
    active: int = 0
    completed: int = 0
    abandoned: int = 0
    error: int = 0

    model_config = _CAMEL


class ByStatus(BaseModel):
    all_time: StatusBreakdown = Field(default_factory=StatusBreakdown)
    period: StatusBreakdown = Field(default_factory=StatusBreakdown)

    model_config = _CAMEL


class Rates(BaseModel):
    completion: float = 0.0
    abandonment: float = 0.0
    error: float = 0.0

    model_config = _CAMEL


class Funnel(BaseModel):
    started: int = 0
    email_captured: int = 0
    completed: int = 0
    # Keys only present when the previous stage is non-zero.
    conversions: Dict[str, float] = Field(default_factory=dict)

    model_config = _CAMEL


class DailyTrend(BaseModel):
    date: dt.date
    total: int = 0
    completed: int = 0
    errors: int = 0

    model_config = _CAMEL


class Period(BaseModel):
    start_date: dt.date
    end_date: dt.date

    model_config = _CAMEL


class MetricsRead(BaseModel):
    totals: Totals
    by_status: ByStatus
    rates: Rates
    avg_duration_seconds: float = 0.0
    funnel: Funnel
    daily_trends: List[DailyTrend] = Field(default_factory=list)
    period: Period

    model_config = _CAMEL
