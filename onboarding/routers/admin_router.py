"""Admin dashboard API: metrics and listings. Requires an authenticated principal."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi_pagination import Page, create_page
from sqlalchemy.orm import Session

from onboarding.auth.principal import Principal, get_current_principal
from onboarding.config import Settings
from onboarding.db import get_db
from onboarding.models.conversation import Conversation
from onboarding.routers.utils.dependencies import get_app_settings, get_conversation_by_id
from onboarding.routers.utils.pagination import (
    ErrorEventPage,
    FeedbackPage,
    ListingParams,
    get_listing_params,
    page_fields,
)
from onboarding.routers.utils.views import build_conversation_detail, conversation_to_list_row
from onboarding.schemas.conversation import ConversationDetail, ConversationListRow
from onboarding.schemas.error_event import ErrorEventRead
from onboarding.schemas.feedback import FeedbackRead
from onboarding.schemas.listing import (
    ConversationStatusFilter,
    ErrorTypeFilter,
    ListingQuery,
    SortDirection,
    SortKey,
)
from onboarding.schemas.metrics import MetricsRead
from onboarding.services.metrics_service import (
    MetricsService,
    local_midnight_utc,
    resolve_timezone,
)
from onboarding.services.query_service import QueryService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={404: {"description": "Not found"}},
)


def _date_range(
    settings: Settings, start_date: Optional[date], end_date: Optional[date]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive local dates -> [start, end) naive UTC bounds."""
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=400, detail="startDate must not be after endDate"
        )
    tz = resolve_timezone(settings.metrics_timezone)
    start = local_midnight_utc(start_date, tz) if start_date else None
    end = local_midnight_utc(end_date + timedelta(days=1), tz) if end_date else None
    return start, end


@router.get("/metrics", response_model=MetricsRead)
def get_metrics(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    _principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> MetricsRead:
    """Totals, status breakdowns, rates, funnel and daily trends for a window."""
    try:
        return MetricsService(db, settings=settings).get_metrics(
            start_date=start_date, end_date=end_date
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/conversations", response_model=Page[ConversationListRow])
def list_conversations(
    params: ListingParams = Depends(get_listing_params),
    status: ConversationStatusFilter = Query(ConversationStatusFilter.ALL),
    search: Optional[str] = Query(None, max_length=255),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sort_by: SortKey = Query(SortKey.CREATED_AT, alias="sortBy"),
    sort_order: SortDirection = Query(SortDirection.DESC, alias="sortOrder"),
    _principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> Page[ConversationListRow]:
    """List conversations filtered by status, date range and search term."""
    start, end = _date_range(settings, start_date, end_date)
    result = QueryService(db).list_conversations(
        ListingQuery(
            status=status.value,
            start=start,
            end=end,
            search=search,
            sort_key=sort_by,
            sort_direction=sort_order,
            page=params.page,
            limit=params.size,
        )
    )
    rows = [conversation_to_list_row(c) for c in result.items]
    return create_page(rows, total=result.total, params=params)


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
def get_conversation_detail(
    conversation: Conversation = Depends(get_conversation_by_id),
    _principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ConversationDetail:
    """Conversation with ordered messages, collected data, sports center and errors."""
    return build_conversation_detail(db, conversation)


@router.get("/errors", response_model=ErrorEventPage)
def list_errors(
    params: ListingParams = Depends(get_listing_params),
    error_type: ErrorTypeFilter = Query(ErrorTypeFilter.ALL, alias="type"),
    search: Optional[str] = Query(None, max_length=255),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sort_order: SortDirection = Query(SortDirection.DESC, alias="sortOrder"),
    _principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> ErrorEventPage:
    """List error events with a per-type summary over the same window."""
    start, end = _date_range(settings, start_date, end_date)
    result = QueryService(db).list_errors(
        ListingQuery(
            status=error_type.value,
            start=start,
            end=end,
            search=search,
            sort_direction=sort_order,
            page=params.page,
            limit=params.size,
        )
    )
    return ErrorEventPage(
        items=[ErrorEventRead.from_model(e) for e in result.items],
        summary=result.summary,
        **page_fields(result),
    )


@router.get("/feedbacks", response_model=FeedbackPage)
def list_feedbacks(
    params: ListingParams = Depends(get_listing_params),
    rating: Optional[int] = Query(None, ge=1, le=5),
    search: Optional[str] = Query(None, max_length=255),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sort_order: SortDirection = Query(SortDirection.DESC, alias="sortOrder"),
    _principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> FeedbackPage:
    """List feedback with the average rating alongside."""
    start, end = _date_range(settings, start_date, end_date)
    listing = ListingQuery(
        start=start,
        end=end,
        search=search,
        sort_direction=sort_order,
        page=params.page,
        limit=params.size,
        rating=rating,
    )
    service = QueryService(db)
    result = service.list_feedbacks(listing)
    return FeedbackPage(
        items=[FeedbackRead.model_validate(f) for f in result.items],
        stats=service.feedback_stats(listing),
        **page_fields(result),
    )
