"""
Collected-data projector.

Folds the ``collectedData`` partials carried by assistant messages into the
typed CollectedData form, and answers whether that form is complete enough to
attempt provisioning. Everything here is pure; persistence is the state
machine's job.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Optional, Tuple

from onboarding.schemas.collected_data import (
    CollectedData,
    CollectedDataPartial,
    ConfigurationSummary,
    Facility,
    FacilitySummary,
    Readiness,
    Schedule,
    ScheduleSummary,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

MIN_SLOT_MINUTES = 15
MAX_SLOT_MINUTES = 480

# (attribute, label shown to the user)
MANDATORY_FIELDS: List[Tuple[str, str]] = [
    ("sports_center_name", "Sports center name"),
    ("city", "City"),
    ("language", "Language"),
    ("admin_name", "Administrator name"),
    ("admin_email", "Administrator email"),
]

# Fields owned by the error tracker / escalation, never touched by message replay.
TRACKER_FIELDS = ("escalated_to_human", "escalation_reason", "last_error")

DAY_NAMES = ["", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Trim and lower-case; return None when the result is not a valid address."""
    if not value:
        return None
    candidate = value.strip().lower()
    if EMAIL_PATTERN.match(candidate):
        return candidate
    return None


def parse_time_to_minutes(value: str) -> Optional[int]:
    match = TIME_PATTERN.match(value or "")
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


class CollectedDataService:
    """Typed merge, replay, validation and readiness over CollectedData."""

    def extract_partial(self, metadata: Optional[dict]) -> Optional[CollectedDataPartial]:
        """
        Pull the ``collectedData`` partial out of message metadata.

        Returns None when the message carries no partial. Raises pydantic's
        ValidationError when the partial is malformed.
        """
        if not metadata:
            return None
        raw = metadata.get("collectedData", metadata.get("collected_data"))
        if raw is None:
            return None
        return CollectedDataPartial.model_validate(raw)

    def merge(
        self,
        current: CollectedData,
        partial: CollectedDataPartial,
        conversation_id: Optional[str] = None,
    ) -> CollectedData:
        """
        Shallow field-by-field merge.

        Scalars: a supplied non-null value overrides. ``facilities``: replaced
        wholesale by the supplied list. Unsupplied or null fields are kept.
        """
        updates: dict[str, Any] = {}
        for name in partial.model_fields_set:
            value = getattr(partial, name)
            if value is None:
                continue
            if name == "admin_email":
                email = normalize_email(value)
                if email is None:
                    logger.warning(
                        "Ignoring invalid admin email for conversation %s",
                        conversation_id,
                    )
                    continue
                value = email
            elif isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            updates[name] = value
        if not updates:
            return current
        return current.model_copy(update=updates, deep=True)

    def replay(
        self,
        partials: Iterable[CollectedDataPartial],
        preserved: CollectedData,
        conversation_id: Optional[str] = None,
    ) -> CollectedData:
        """Rebuild message-derived fields from scratch, keeping tracker-owned ones."""
        data = CollectedData(
            **{name: getattr(preserved, name) for name in TRACKER_FIELDS}
        )
        for partial in partials:
            data = self.merge(data, partial, conversation_id=conversation_id)
        return data

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_schedule(self, schedule: Schedule) -> List[str]:
        errors: List[str] = []

        if not schedule.weekdays:
            errors.append("At least one weekday must be selected")
        else:
            for day in schedule.weekdays:
                if day < 1 or day > 7:
                    errors.append(f"Invalid weekday: {day}. Must be 1-7 (Monday-Sunday)")

        start = parse_time_to_minutes(schedule.start_time)
        end = parse_time_to_minutes(schedule.end_time)
        if start is None:
            errors.append(
                f"Invalid start time format: {schedule.start_time}. Use HH:mm format"
            )
        if end is None:
            errors.append(f"Invalid end time format: {schedule.end_time}. Use HH:mm format")

        if start is not None and end is not None:
            if end <= start:
                errors.append("End time must be after start time")
            elif schedule.duration <= 0:
                errors.append("Duration must be greater than 0")
            elif (end - start) % schedule.duration != 0:
                errors.append(
                    f"Duration ({schedule.duration} min) does not divide evenly "
                    f"into operating hours ({end - start} min)"
                )

        if schedule.duration < MIN_SLOT_MINUTES:
            errors.append(f"Duration should be at least {MIN_SLOT_MINUTES} minutes")
        elif schedule.duration > MAX_SLOT_MINUTES:
            errors.append("Duration should not exceed 8 hours (480 minutes)")

        if schedule.rate < 0:
            errors.append("Rate cannot be negative")

        return errors

    def find_overlaps(self, schedules: List[Schedule]) -> List[str]:
        """Two schedules sharing a weekday must not have intersecting time ranges."""
        errors: List[str] = []
        for i, first in enumerate(schedules):
            first_start = parse_time_to_minutes(first.start_time)
            first_end = parse_time_to_minutes(first.end_time)
            if first_start is None or first_end is None:
                continue
            for j in range(i + 1, len(schedules)):
                second = schedules[j]
                second_start = parse_time_to_minutes(second.start_time)
                second_end = parse_time_to_minutes(second.end_time)
                if second_start is None or second_end is None:
                    continue
                shared = sorted(set(first.weekdays) & set(second.weekdays))
                if shared and first_start < second_end and second_start < first_end:
                    days = ", ".join(DAY_NAMES[d] for d in shared if 1 <= d <= 7)
                    errors.append(
                        f"Schedules {i + 1} and {j + 1} overlap on {days}"
                    )
        return errors

    def validate_facility(self, facility: Facility) -> List[str]:
        if not facility.schedules:
            return [f"{facility.name}: At least one schedule is required"]
        errors: List[str] = []
        for index, schedule in enumerate(facility.schedules, start=1):
            for error in self.validate_schedule(schedule):
                errors.append(f"{facility.name}: Schedule {index}: {error}")
        for error in self.find_overlaps(facility.schedules):
            errors.append(f"{facility.name}: {error}")
        return errors

    def readiness(
        self, data: CollectedData, fallback_language: Optional[str] = None
    ) -> Readiness:
        missing: List[str] = []
        for attribute, label in MANDATORY_FIELDS:
            value = getattr(data, attribute)
            if attribute == "language" and not value:
                value = fallback_language
            if not value:
                missing.append(label)
        if not data.facilities:
            missing.append("At least one facility")

        schedule_errors: List[str] = []
        for facility in data.facilities:
            schedule_errors.extend(self.validate_facility(facility))

        return Readiness(
            is_ready=not missing and not schedule_errors,
            confirmed=data.confirmed,
            missing=missing,
            schedule_errors=schedule_errors,
        )

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------

    @staticmethod
    def format_weekdays(days: List[int]) -> str:
        unique = sorted(set(days))
        if len(unique) == 7:
            return "Every day"
        if unique == [1, 2, 3, 4, 5]:
            return "Monday to Friday"
        if unique == [6, 7]:
            return "Weekends"
        return ", ".join(DAY_NAMES[d] for d in unique if 1 <= d <= 7)

    def summarize(
        self, data: CollectedData, fallback_language: Optional[str] = None
    ) -> ConfigurationSummary:
        readiness = self.readiness(data, fallback_language=fallback_language)
        facilities = [
            FacilitySummary(
                name=facility.name,
                sport_name=facility.sport_name,
                schedules=[
                    ScheduleSummary(
                        weekdays=self.format_weekdays(s.weekdays),
                        hours=f"{s.start_time} - {s.end_time}",
                        duration=s.duration,
                        rate=s.rate,
                    )
                    for s in facility.schedules
                ],
            )
            for facility in data.facilities
        ]
        return ConfigurationSummary(
            is_ready=readiness.is_ready,
            sports_center_name=data.sports_center_name,
            city=data.city,
            language=data.language or fallback_language,
            admin_name=data.admin_name,
            admin_email=data.admin_email,
            facilities=facilities,
            confirmed=data.confirmed,
            missing=readiness.missing,
        )
