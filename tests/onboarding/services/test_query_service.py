"""Tests for QueryService listings."""

from datetime import datetime, timedelta

import pytest

from onboarding.constants.conversation_status import ConversationStatus
from onboarding.models.error_event import ErrorEvent
from onboarding.models.feedback import Feedback
from onboarding.schemas.listing import ListingQuery, PageResult, SortDirection
from onboarding.services.query_service import QueryService

BASE = datetime(2026, 10, 1, 9, 0)


@pytest.fixture
def setup_error_events(db, setup_conversation):
    """25 events: 20 sporttia_api_error then 5 email_failed, one minute apart."""
    events = []
    for i in range(25):
        events.append(
            ErrorEvent(
                conversation_id=setup_conversation.id,
                error_type="sporttia_api_error" if i < 20 else "email_failed",
                message=f"Failure number {i}",
                created_at=BASE + timedelta(minutes=i),
            )
        )
    db.add_all(events)
    db.commit()
    return events


def test_page_result_total_pages():
    assert PageResult(items=[], total=0, page=1, limit=20).total_pages == 0
    assert PageResult(items=[], total=20, page=1, limit=20).total_pages == 1
    assert PageResult(items=[], total=21, page=1, limit=20).total_pages == 2


def test_errors_second_page(db, setup_error_events):
    result = QueryService(db).list_errors(ListingQuery(page=2, limit=20))
    assert len(result.items) == 5
    assert result.total == 25
    assert result.total_pages == 2
    # Newest first; the second page holds the five oldest.
    assert [e.message for e in result.items] == [
        f"Failure number {i}" for i in (4, 3, 2, 1, 0)
    ]


def test_page_beyond_range_is_empty(db, setup_error_events):
    result = QueryService(db).list_errors(ListingQuery(page=5, limit=20))
    assert result.items == []
    assert result.total == 25


def test_error_type_filter_and_summary(db, setup_error_events):
    result = QueryService(db).list_errors(ListingQuery(status="email_failed"))
    assert result.total == 5
    assert {e.error_type for e in result.items} == {"email_failed"}
    # The summary ignores the type filter and lists every type.
    assert result.summary == {
        "sporttia_api_error": 20,
        "openai_api_error": 0,
        "email_failed": 5,
        "validation_error": 0,
        "internal_error": 0,
    }


def test_error_search_by_message(db, setup_error_events):
    result = QueryService(db).list_errors(ListingQuery(search="NUMBER 2"))
    # "number 2" plus "number 20".."number 24"
    assert result.total == 6


def test_error_search_treats_wildcards_literally(db, setup_error_events):
    assert QueryService(db).list_errors(ListingQuery(search="%")).total == 0


def test_error_date_window_start_inclusive_end_exclusive(db, setup_error_events):
    listing = ListingQuery(
        start=BASE + timedelta(minutes=10), end=BASE + timedelta(minutes=15)
    )
    result = QueryService(db).list_errors(listing)
    assert result.total == 5
    assert sum(result.summary.values()) == 5


def test_conversations_filtered_by_status(db, make_conversation):
    make_conversation(status=ConversationStatus.ACTIVE)
    make_conversation(status=ConversationStatus.COMPLETED)
    make_conversation(status=ConversationStatus.COMPLETED)

    service = QueryService(db)
    assert service.list_conversations(ListingQuery(status="completed")).total == 2
    assert service.list_conversations(ListingQuery(status="all")).total == 3


def test_conversations_search_by_email_and_id_prefix(db, make_conversation):
    target = make_conversation(admin_email="gestion@padelnorte.es")
    make_conversation(admin_email="info@tenis.es")

    service = QueryService(db)
    by_email = service.list_conversations(ListingQuery(search="PadelNorte"))
    by_id = service.list_conversations(ListingQuery(search=target.id[:8].upper()))

    assert [c.id for c in by_email.items] == [target.id]
    assert target.id in [c.id for c in by_id.items]


def test_conversations_sorted_with_stable_tie_breaker(db, make_conversation):
    created = datetime(2026, 10, 5, 12, 0)
    ids = sorted(make_conversation(created_at=created).id for _ in range(3))

    ascending = QueryService(db).list_conversations(
        ListingQuery(sort_direction=SortDirection.ASC)
    )
    descending = QueryService(db).list_conversations(ListingQuery())

    assert [c.id for c in ascending.items] == ids
    assert [c.id for c in descending.items] == list(reversed(ids))


def test_feedback_stats_ignore_rating_filter(db):
    for rating in (5, 4, 4, None):
        db.add(Feedback(rating=rating, message=f"Rated {rating}"))
    db.commit()

    service = QueryService(db)
    listing = ListingQuery(rating=4)
    result = service.list_feedbacks(listing)
    stats = service.feedback_stats(listing)

    assert result.total == 2
    assert stats.total_ratings == 3
    assert stats.average_rating == 4.3


def test_feedback_stats_without_ratings(db):
    stats = QueryService(db).feedback_stats(ListingQuery())
    assert stats.total_ratings == 0
    assert stats.average_rating == 0.0
