"""Filtered, sorted, paginated listings for the dashboard. Read-only."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from onboarding.constants.error_types import ERROR_TYPE_VALUES
from onboarding.models.conversation import Conversation
from onboarding.models.error_event import ErrorEvent
from onboarding.models.feedback import Feedback
from onboarding.schemas.feedback import FeedbackStats
from onboarding.schemas.listing import (
    ALL,
    ListingQuery,
    PageResult,
    SortDirection,
)
from onboarding.services.metrics_service import round_one


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _apply_window(query: Query, column: Any, listing: ListingQuery) -> Query:
    if listing.start is not None:
        query = query.filter(column >= listing.start)
    if listing.end is not None:
        query = query.filter(column < listing.end)
    return query


def _apply_sort(query: Query, model: Any, listing: ListingQuery) -> Query:
    column = getattr(model, listing.sort_key.value, None)
    if column is None:
        column = model.created_at
    if listing.sort_direction == SortDirection.ASC:
        return query.order_by(column.asc(), model.id.asc())
    return query.order_by(column.desc(), model.id.desc())


def _page(
    query: Query, listing: ListingQuery, summary: Optional[Dict[str, int]] = None
) -> PageResult:
    total = query.order_by(None).count()
    items = query.offset(listing.offset).limit(listing.limit).all()
    return PageResult(
        items=items,
        total=total,
        page=listing.page,
        limit=listing.limit,
        summary=summary or {},
    )


class QueryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    # -------------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------------

    def conversations_query(self, listing: ListingQuery) -> Query:
        query = self.db.query(Conversation)
        if listing.status and listing.status != ALL:
            query = query.filter(Conversation.status == listing.status)
        query = _apply_window(query, Conversation.created_at, listing)
        if listing.search:
            term = _escape_like(listing.search.strip().lower())
            query = query.filter(
                or_(
                    func.lower(Conversation.id).like(f"{term}%", escape="\\"),
                    func.lower(Conversation.admin_email).like(f"%{term}%", escape="\\"),
                )
            )
        return query

    def list_conversations(self, listing: ListingQuery) -> PageResult:
        query = self.conversations_query(listing).options(
            selectinload(Conversation.sports_center)
        )
        return _page(_apply_sort(query, Conversation, listing), listing)

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    def _errors_base(self, listing: ListingQuery) -> Query:
        query = _apply_window(self.db.query(ErrorEvent), ErrorEvent.created_at, listing)
        if listing.search:
            term = _escape_like(listing.search.strip().lower())
            query = query.filter(
                or_(
                    func.lower(ErrorEvent.conversation_id).like(f"{term}%", escape="\\"),
                    func.lower(ErrorEvent.message).like(f"%{term}%", escape="\\"),
                )
            )
        return query

    def error_summary(self, listing: ListingQuery) -> Dict[str, int]:
        """Count per error type over the window/search, ignoring the type filter."""
        rows = (
            self._errors_base(listing)
            .with_entities(ErrorEvent.error_type, func.count(ErrorEvent.id))
            .group_by(ErrorEvent.error_type)
            .all()
        )
        summary = {error_type: 0 for error_type in ERROR_TYPE_VALUES}
        for error_type, count in rows:
            summary[error_type] = summary.get(error_type, 0) + count
        return summary

    def list_errors(self, listing: ListingQuery) -> PageResult:
        query = self._errors_base(listing)
        if listing.status and listing.status != ALL:
            query = query.filter(ErrorEvent.error_type == listing.status)
        return _page(
            _apply_sort(query, ErrorEvent, listing),
            listing,
            summary=self.error_summary(listing),
        )

    # -------------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------------

    def _feedback_base(self, listing: ListingQuery) -> Query:
        query = _apply_window(self.db.query(Feedback), Feedback.created_at, listing)
        if listing.search:
            term = _escape_like(listing.search.strip().lower())
            query = query.filter(
                func.lower(Feedback.message).like(f"%{term}%", escape="\\")
            )
        return query

    def feedback_stats(self, listing: ListingQuery) -> FeedbackStats:
        """Average over rated feedback in the window; the rating filter is not applied."""
        average, count = (
            self._feedback_base(listing)
            .filter(Feedback.rating.isnot(None))
            .with_entities(func.avg(Feedback.rating), func.count(Feedback.id))
            .one()
        )
        return FeedbackStats(
            average_rating=round_one(float(average)) if count else 0.0,
            total_ratings=count or 0,
        )

    def list_feedbacks(self, listing: ListingQuery) -> PageResult:
        query = self._feedback_base(listing)
        if listing.rating is not None:
            query = query.filter(Feedback.rating == listing.rating)
        return _page(_apply_sort(query, Feedback, listing), listing)
