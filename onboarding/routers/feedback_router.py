"""Feedback intake from the chat UI."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from onboarding.db import get_db
from onboarding.schemas.feedback import FeedbackCreate, FeedbackRead
from onboarding.services.feedback_service import FeedbackService

router = APIRouter(prefix="/feedbacks", tags=["feedbacks"])


@router.post("", response_model=FeedbackRead, status_code=201)
def create_feedback(
    data: FeedbackCreate,
    db: Session = Depends(get_db),
) -> FeedbackRead:
    """Store a feedback entry, optionally linked to a conversation."""
    feedback = FeedbackService(db).create_feedback(data)
    return FeedbackRead.model_validate(feedback)
