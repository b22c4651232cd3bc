"""Pagination models shared by the admin listings."""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import Depends, HTTPException, Query
from fastapi_pagination import Page, Params
from pydantic import Field

from onboarding.config import Settings
from onboarding.routers.utils.dependencies import get_app_settings
from onboarding.schemas.error_event import ErrorEventRead
from onboarding.schemas.feedback import FeedbackRead, FeedbackStats
from onboarding.schemas.listing import PageResult


class ListingParams(Params):
    """Page and size; limits come from settings, see ``get_listing_params``."""

    page: int = Field(1, ge=1)
    size: int = Field(20, ge=1)


def get_listing_params(
    page: int = Query(1, ge=1, description="Page number"),
    size: Optional[int] = Query(None, ge=1, description="Page size"),
    settings: Settings = Depends(get_app_settings),
) -> ListingParams:
    if size is None:
        size = min(settings.default_page_size, settings.max_page_size)
    if size > settings.max_page_size:
        raise HTTPException(
            status_code=422,
            detail=f"size must be at most {settings.max_page_size}",
        )
    return ListingParams(page=page, size=size)


class ErrorEventPage(Page[ErrorEventRead]):
    summary: Dict[str, int] = Field(default_factory=dict)


class FeedbackPage(Page[FeedbackRead]):
    stats: FeedbackStats = Field(default_factory=FeedbackStats)


def page_fields(result: PageResult) -> dict:
    return {
        "total": result.total,
        "page": result.page,
        "size": result.limit,
        "pages": result.total_pages,
    }
