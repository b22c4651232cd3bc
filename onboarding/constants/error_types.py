"""Closed taxonomy of failures recorded by the error tracker."""

from enum import Enum


class ErrorType(str, Enum):
    SPORTTIA_API_ERROR = "sporttia_api_error"  # provisioning collaborator
    OPENAI_API_ERROR = "openai_api_error"  # assistant/model calls
    EMAIL_FAILED = "email_failed"  # notification delivery
    VALIDATION_ERROR = "validation_error"  # collected data failed checks
    INTERNAL_ERROR = "internal_error"


ERROR_TYPE_VALUES = [t.value for t in ErrorType]


def classify_error_type(value: object) -> ErrorType:
    """Map an arbitrary label onto the taxonomy; unknown labels are internal errors."""
    if isinstance(value, ErrorType):
        return value
    try:
        return ErrorType(str(value))
    except ValueError:
        return ErrorType.INTERNAL_ERROR
