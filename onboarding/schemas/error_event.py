"""Schemas for the error ledger as rendered on the dashboard."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, computed_field, field_validator
from pydantic.alias_generators import to_camel

from onboarding.constants.error_types import ErrorType, classify_error_type

NO_DETAIL_TEXT = "no additional detail"
CONVERSATION_LINK_TEMPLATE = "/admin/conversations/{conversation_id}"


class ErrorEventRead(BaseModel):
    """
    One ledger row. ``details`` is tolerated in any shape: anything that is not
    a JSON object is dropped and rendered as ``NO_DETAIL_TEXT``.
    """

    id: str
    conversation_id: Optional[str] = None
    error_type: ErrorType
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @field_validator("error_type", mode="before")
    @classmethod
    def _classify(cls, value: Any) -> ErrorType:
        return classify_error_type(value)

    @field_validator("details", mode="before")
    @classmethod
    def _tolerate_malformed(cls, value: Any) -> Optional[Dict[str, Any]]:
        if isinstance(value, dict) and value:
            return value
        return None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def details_text(self) -> str:
        if not self.details:
            return NO_DETAIL_TEXT
        return ", ".join(f"{key}: {value}" for key, value in self.details.items())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def conversation_link(self) -> Optional[str]:
        if not self.conversation_id:
            return None
        return CONVERSATION_LINK_TEMPLATE.format(conversation_id=self.conversation_id)

    @classmethod
    def from_model(cls, event) -> "ErrorEventRead":
        return cls(
            id=event.id,
            conversation_id=event.conversation_id,
            error_type=event.error_type,
            message=event.message or "Unknown error",
            details=event.details,
            timestamp=event.created_at,
        )
