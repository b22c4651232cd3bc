"""
Dashboard metrics.

Counts over all time come straight from SQL. Everything about the requested
period is computed in Python by ``aggregate_period`` from the conversations
created inside the window, so the result is a pure function of
(corpus, window, now, timezone).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from onboarding.config import Settings, get_settings
from onboarding.constants.conversation_status import ConversationStatus
from onboarding.core.clock import to_naive_utc, utcnow
from onboarding.models.conversation import Conversation
from onboarding.schemas.metrics import (
    ByStatus,
    DailyTrend,
    Funnel,
    MetricsRead,
    Period,
    Rates,
    StatusBreakdown,
    Totals,
)

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


@dataclass(frozen=True)
class ConversationFacts:
    """The columns metrics need; timestamps are naive UTC."""

    id: str
    status: str
    created_at: datetime
    updated_at: datetime
    admin_email: Optional[str] = None


@dataclass
class PeriodAggregate:
    by_status: StatusBreakdown
    rates: Rates
    avg_duration_seconds: float
    funnel: Funnel
    daily_trends: List[DailyTrend]


def round_one(value: float) -> float:
    """Round half-up to one decimal."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round_one(part / whole * 100)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Configured zone, or the machine's local zone when unset."""
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def local_midnight_utc(day: date, tz: tzinfo) -> datetime:
    """Naive UTC instant of 00:00 on ``day`` in ``tz``."""
    local = datetime.combine(day, time.min).replace(tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def window_bounds(start_date: date, end_date: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """[start of start_date, start of the day after end_date) as naive UTC."""
    return (
        local_midnight_utc(start_date, tz),
        local_midnight_utc(end_date + timedelta(days=1), tz),
    )


def local_date(value: datetime, tz: tzinfo) -> date:
    return value.replace(tzinfo=timezone.utc).astimezone(tz).date()


def build_funnel(started: int, email_captured: int, completed: int) -> Funnel:
    conversions: Dict[str, float] = {}
    if started:
        conversions["startedToEmailCaptured"] = percentage(email_captured, started)
    if email_captured:
        conversions["emailCapturedToCompleted"] = percentage(completed, email_captured)
    return Funnel(
        started=started,
        email_captured=email_captured,
        completed=completed,
        conversions=conversions,
    )


def aggregate_period(
    rows: Iterable[ConversationFacts],
    start_date: date,
    end_date: date,
    tz: tzinfo,
) -> PeriodAggregate:
    """
    Period statistics over conversations created inside the window.

    Uses each conversation's current status. Daily buckets cover every day
    from ``start_date`` to ``end_date`` inclusive, zero-filled.
    """
    counts = {status.value: 0 for status in ConversationStatus}
    buckets: Dict[date, DailyTrend] = {}
    day = start_date
    while day <= end_date:
        buckets[day] = DailyTrend(date=day)
        day += timedelta(days=1)

    durations: List[float] = []
    email_captured = 0
    total = 0
    for row in rows:
        total += 1
        counts[row.status] = counts.get(row.status, 0) + 1
        if row.admin_email:
            email_captured += 1
        if row.status == ConversationStatus.COMPLETED.value:
            durations.append((row.updated_at - row.created_at).total_seconds())

        bucket = buckets.get(local_date(row.created_at, tz))
        if bucket is not None:
            bucket.total += 1
            if row.status == ConversationStatus.COMPLETED.value:
                bucket.completed += 1
            elif row.status == ConversationStatus.ERROR.value:
                bucket.errors += 1

    by_status = StatusBreakdown(
        active=counts[ConversationStatus.ACTIVE.value],
        completed=counts[ConversationStatus.COMPLETED.value],
        abandoned=counts[ConversationStatus.ABANDONED.value],
        error=counts[ConversationStatus.ERROR.value],
    )
    rates = Rates(
        completion=percentage(by_status.completed, total),
        abandonment=percentage(by_status.abandoned, total),
        error=percentage(by_status.error, total),
    )
    avg_duration = round_one(sum(durations) / len(durations)) if durations else 0.0

    return PeriodAggregate(
        by_status=by_status,
        rates=rates,
        avg_duration_seconds=avg_duration,
        funnel=build_funnel(total, email_captured, by_status.completed),
        daily_trends=[buckets[d] for d in sorted(buckets)],
    )


class MetricsService:
    def __init__(self, db: Session, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    def default_start(self, end_date: date) -> date:
        return end_date - timedelta(days=self.settings.metrics_default_window_days - 1)

    def get_metrics(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
    ) -> MetricsRead:
        """
        Compute the dashboard payload.

        Raises ValueError when ``start_date`` is after ``end_date``.
        """
        tz = tz or resolve_timezone(self.settings.metrics_timezone)
        now = to_naive_utc(now) if now else utcnow()
        today = local_date(now, tz)

        end_date = end_date or today
        start_date = start_date or self.default_start(end_date)
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")

        period_start, period_end = window_bounds(start_date, end_date, tz)
        rows = self._period_rows(period_start, period_end)
        aggregate = aggregate_period(rows, start_date, end_date, tz)

        totals = Totals(
            today=self._count_since(local_midnight_utc(today, tz), now),
            this_week=self._count_since(now - WEEK, now),
            all_time=self._count_all(),
            period=aggregate.funnel.started,
        )
        logger.debug(
            "Metrics computed for %s..%s (%s conversations in period)",
            start_date,
            end_date,
            totals.period,
        )
        return MetricsRead(
            totals=totals,
            by_status=ByStatus(all_time=self._status_counts(), period=aggregate.by_status),
            rates=aggregate.rates,
            avg_duration_seconds=aggregate.avg_duration_seconds,
            funnel=aggregate.funnel,
            daily_trends=aggregate.daily_trends,
            period=Period(start_date=start_date, end_date=end_date),
        )

    def _period_rows(self, start: datetime, end: datetime) -> List[ConversationFacts]:
        result = (
            self.db.query(
                Conversation.id,
                Conversation.status,
                Conversation.created_at,
                Conversation.updated_at,
                Conversation.admin_email,
            )
            .filter(Conversation.created_at >= start, Conversation.created_at < end)
            .order_by(Conversation.created_at.asc(), Conversation.id.asc())
            .all()
        )
        return [
            ConversationFacts(
                id=r.id,
                status=r.status,
                created_at=r.created_at,
                updated_at=r.updated_at,
                admin_email=r.admin_email,
            )
            for r in result
        ]

    def _count_since(self, start: datetime, now: datetime) -> int:
        return (
            self.db.query(func.count(Conversation.id))
            .filter(Conversation.created_at >= start, Conversation.created_at <= now)
            .scalar()
            or 0
        )

    def _count_all(self) -> int:
        return self.db.query(func.count(Conversation.id)).scalar() or 0

    def _status_counts(self) -> StatusBreakdown:
        rows = (
            self.db.query(Conversation.status, func.count(Conversation.id))
            .group_by(Conversation.status)
            .all()
        )
        counts = {status: count for status, count in rows}
        return StatusBreakdown(
            active=counts.get(ConversationStatus.ACTIVE.value, 0),
            completed=counts.get(ConversationStatus.COMPLETED.value, 0),
            abandoned=counts.get(ConversationStatus.ABANDONED.value, 0),
            error=counts.get(ConversationStatus.ERROR.value, 0),
        )
