"""Tests for MetricsService and the pure aggregation helpers."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from onboarding.constants.conversation_status import ConversationStatus
from onboarding.services.metrics_service import (
    ConversationFacts,
    MetricsService,
    aggregate_period,
    build_funnel,
    local_midnight_utc,
    percentage,
    round_one,
    window_bounds,
)

UTC = ZoneInfo("UTC")
MADRID = ZoneInfo("Europe/Madrid")
NOW = datetime(2026, 10, 18, 12, 0, 0)
WEEK_START = date(2026, 10, 12)
WEEK_END = date(2026, 10, 18)


def _metrics(db, settings, start=WEEK_START, end=WEEK_END, tz=UTC):
    return MetricsService(db, settings=settings).get_metrics(
        start_date=start, end_date=end, now=NOW, tz=tz
    )


def test_round_one_is_half_up():
    assert round_one(66.66666) == 66.7
    assert round_one(0.05) == 0.1
    assert round_one(2.25) == 2.3
    assert percentage(1, 3) == 33.3
    assert percentage(5, 0) == 0.0


def test_funnel_conversions():
    funnel = build_funnel(started=10, email_captured=6, completed=4)
    assert funnel.conversions == {
        "startedToEmailCaptured": 60.0,
        "emailCapturedToCompleted": 66.7,
    }


def test_funnel_omits_conversions_with_zero_denominator():
    assert build_funnel(0, 0, 0).conversions == {}
    assert build_funnel(3, 0, 0).conversions == {"startedToEmailCaptured": 0.0}


def test_window_bounds_follow_local_midnight():
    start, end = window_bounds(date(2026, 10, 18), date(2026, 10, 18), MADRID)
    assert start == datetime(2026, 10, 17, 22, 0)
    assert end == datetime(2026, 10, 18, 22, 0)
    assert local_midnight_utc(date(2026, 12, 1), MADRID) == datetime(2026, 11, 30, 23, 0)


def test_aggregate_period_is_pure():
    rows = [
        ConversationFacts(
            id=str(i),
            status=ConversationStatus.COMPLETED.value,
            created_at=datetime(2026, 10, 13, 9, 0),
            updated_at=datetime(2026, 10, 13, 9, 0) + timedelta(minutes=i),
            admin_email="a@b.co",
        )
        for i in (10, 20)
    ]
    first = aggregate_period(rows, WEEK_START, WEEK_END, UTC)
    second = aggregate_period(list(rows), WEEK_START, WEEK_END, UTC)
    assert first == second
    assert first.avg_duration_seconds == 900.0
    assert first.rates.completion == 100.0


def test_empty_corpus_yields_zeros_without_gaps(db, settings):
    metrics = _metrics(db, settings)

    assert metrics.totals.period == 0
    assert metrics.totals.all_time == 0
    assert metrics.rates.completion == 0.0
    assert metrics.rates.abandonment == 0.0
    assert metrics.rates.error == 0.0
    assert metrics.avg_duration_seconds == 0.0
    assert metrics.funnel.conversions == {}
    assert [d.date for d in metrics.daily_trends] == [
        WEEK_START + timedelta(days=i) for i in range(7)
    ]
    assert all(d.total == 0 for d in metrics.daily_trends)


def test_funnel_scenario(db, make_conversation, settings, faker):
    """started=10, emailCaptured=6, completed=4 -> 60.0 / 66.7."""
    created = datetime(2026, 10, 14, 10, 0)
    for i in range(10):
        completed = i < 4
        make_conversation(
            status=ConversationStatus.COMPLETED if completed else ConversationStatus.ACTIVE,
            created_at=created,
            updated_at=created + timedelta(minutes=10) if completed else created,
            admin_email=faker.email() if i < 6 else None,
        )

    metrics = _metrics(db, settings)

    assert metrics.funnel.started == 10
    assert metrics.funnel.email_captured == 6
    assert metrics.funnel.completed == 4
    assert metrics.funnel.conversions["startedToEmailCaptured"] == 60.0
    assert metrics.funnel.conversions["emailCapturedToCompleted"] == 66.7
    assert metrics.avg_duration_seconds == 600.0


def test_rates_sum_to_one_hundred(db, make_conversation, settings):
    created = datetime(2026, 10, 15, 8, 0)
    for status in (
        ConversationStatus.COMPLETED,
        ConversationStatus.ABANDONED,
        ConversationStatus.ERROR,
    ):
        make_conversation(status=status, created_at=created)

    rates = _metrics(db, settings).rates

    assert (rates.completion, rates.abandonment, rates.error) == (33.3, 33.3, 33.3)
    assert rates.completion + rates.abandonment + rates.error == pytest.approx(
        100, abs=0.2
    )


def test_totals_and_status_breakdowns(db, make_conversation, settings):
    make_conversation(created_at=datetime(2026, 10, 18, 8, 0))
    make_conversation(
        status=ConversationStatus.ERROR, created_at=datetime(2026, 10, 14, 8, 0)
    )
    make_conversation(
        status=ConversationStatus.ABANDONED, created_at=datetime(2026, 9, 1, 8, 0)
    )

    metrics = _metrics(db, settings)

    assert metrics.totals.today == 1
    assert metrics.totals.this_week == 2
    assert metrics.totals.all_time == 3
    assert metrics.totals.period == 2
    assert metrics.by_status.all_time.abandoned == 1
    assert metrics.by_status.period.abandoned == 0
    assert metrics.by_status.period.active == 1
    assert metrics.by_status.period.error == 1


def test_daily_trends_bucket_in_local_time(db, make_conversation, settings):
    """22:30 UTC on the 17th is already the 18th in Madrid."""
    make_conversation(
        status=ConversationStatus.ERROR, created_at=datetime(2026, 10, 17, 22, 30)
    )

    metrics = _metrics(db, settings, tz=MADRID)

    by_day = {d.date: d for d in metrics.daily_trends}
    assert by_day[date(2026, 10, 18)].total == 1
    assert by_day[date(2026, 10, 18)].errors == 1
    assert by_day[date(2026, 10, 17)].total == 0


def test_window_excludes_conversations_outside_it(db, make_conversation, settings):
    make_conversation(created_at=datetime(2026, 10, 11, 23, 59))
    make_conversation(created_at=datetime(2026, 10, 19, 0, 0))
    make_conversation(created_at=datetime(2026, 10, 12, 0, 0))

    assert _metrics(db, settings).totals.period == 1


def test_metrics_are_idempotent(db, make_conversation, settings):
    make_conversation(
        status=ConversationStatus.COMPLETED,
        created_at=datetime(2026, 10, 16, 9, 0),
        updated_at=datetime(2026, 10, 16, 9, 5),
        admin_email="x@y.es",
    )
    first = _metrics(db, settings).model_dump_json(by_alias=True)
    second = _metrics(db, settings).model_dump_json(by_alias=True)
    assert first == second


def test_default_window_ends_today(db, settings):
    metrics = MetricsService(db, settings=settings).get_metrics(now=NOW, tz=UTC)
    assert metrics.period.end_date == date(2026, 10, 18)
    assert metrics.period.start_date == date(2026, 9, 19)
    assert len(metrics.daily_trends) == settings.metrics_default_window_days


def test_start_after_end_is_rejected(db, settings):
    with pytest.raises(ValueError):
        _metrics(db, settings, start=date(2026, 10, 18), end=date(2026, 10, 1))


def test_metrics_serialize_with_camel_case_keys(db, settings):
    payload = _metrics(db, settings).model_dump(mode="json", by_alias=True)
    assert set(payload) == {
        "totals",
        "byStatus",
        "rates",
        "avgDurationSeconds",
        "funnel",
        "dailyTrends",
        "period",
    }
    assert set(payload["totals"]) == {"today", "thisWeek", "allTime", "period"}
