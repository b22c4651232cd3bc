"""
Client for the external sports-center provisioning API.

The core only sees ``ProvisioningClient``: it sends a request built from a
confirmed CollectedData snapshot and gets back either a ``ProvisioningResult``
or a ``ProvisioningError``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import requests

from onboarding.infra.logging_config import get_logger
from onboarding.schemas.collected_data import CollectedData, Facility, Schedule

logger = get_logger("provisioning")

CREATE_PATH = "/zeros/sportcenters"
TIMEOUT_SECONDS = 30
DEFAULT_LANGUAGE = "es"

RETRYABLE_CODES = frozenset({"TIMEOUT", "NETWORK_ERROR"})

_COMMA_CITY = re.compile(r"^(.+),\s*(.+)$")
_PAREN_CITY = re.compile(r"^(.+)\s*\((.+)\)$")


class ProvisioningError(Exception):
    """Failure reported by (or while reaching) the provisioning API."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN",
        status_code: int = 0,
        retryable: Optional[bool] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        if retryable is None:
            retryable = status_code >= 500 or code in RETRYABLE_CODES
        self.retryable = retryable
        self.details = details or {}

    def as_details(self) -> Dict[str, Any]:
        return {"statusCode": self.status_code, "code": self.code, **self.details}


@dataclass
class ProvisioningResult:
    sporttia_id: int
    admin_login: Optional[str] = None
    admin_password: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def split_city(city: str) -> Tuple[str, str]:
    """Split "City, Province" or "City (Province)"; otherwise the city is its own province."""
    city = city.strip()
    match = _COMMA_CITY.match(city) or _PAREN_CITY.match(city)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return city, city


def _schedule_payload(schedule: Schedule) -> Dict[str, Any]:
    return {
        "weekdays": schedule.weekdays,
        "timeini": schedule.start_time,
        "timeend": schedule.end_time,
        "duration": f"{schedule.duration / 60:.2f}",
        "rate": f"{schedule.rate:.2f}",
    }


def _facility_payload(facility: Facility) -> Dict[str, Any]:
    return {
        "name": facility.name,
        "sport": {"id": facility.sport_id, "name": facility.sport_name},
        "schedules": [_schedule_payload(s) for s in facility.schedules],
    }


def build_request(
    data: CollectedData, fallback_language: Optional[str] = None
) -> Dict[str, Any]:
    """Translate a complete CollectedData snapshot into the API request body."""
    city_name, province_name = split_city(data.city or "")
    return {
        "sportcenter": {
            "name": data.sports_center_name,
            "city": {"name": city_name, "province": {"name": province_name}},
            "countryCode": data.country,
            "placeId": data.place_id,
        },
        "admin": {"name": data.admin_name, "email": data.admin_email},
        "language": data.language or fallback_language or DEFAULT_LANGUAGE,
        "facilities": [_facility_payload(f) for f in data.facilities],
    }


class ProvisioningClient(ABC):
    """Contract for the provisioning collaborator."""

    @abstractmethod
    def create_sports_center(self, request: Dict[str, Any]) -> ProvisioningResult:
        """Create the sports center. Raise ProvisioningError on failure."""
        ...


class HttpProvisioningClient(ProvisioningClient):
    """Calls the provisioning HTTP API with a bearer token."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: int = TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_sports_center(self, request: Dict[str, Any]) -> ProvisioningResult:
        url = f"{self.base_url}{CREATE_PATH}"
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.info(
            "Creating sports center %s via %s",
            request.get("sportcenter", {}).get("name"),
            url,
        )
        try:
            resp = self.session.post(
                url, json=request, headers=headers, timeout=self.timeout
            )
        except requests.Timeout as e:
            raise ProvisioningError(
                f"Request timed out after {self.timeout}s", code="TIMEOUT"
            ) from e
        except requests.RequestException as e:
            raise ProvisioningError(str(e), code="NETWORK_ERROR") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 400:
            error = body.get("error") if isinstance(body.get("error"), dict) else body
            raise ProvisioningError(
                error.get("message")
                or f"HTTP {resp.status_code}: {resp.text[:500] if resp.text else 'no body'}",
                code=str(error.get("code") or f"HTTP_{resp.status_code}"),
                status_code=resp.status_code,
            )

        payload = body.get("data", body)
        sporttia_id = payload.get("sportcenterId") if isinstance(payload, dict) else None
        if sporttia_id is None:
            raise ProvisioningError(
                "Provisioning response did not include a sports center id",
                code="INVALID_RESPONSE",
                status_code=resp.status_code,
                retryable=False,
            )
        try:
            sporttia_id = int(sporttia_id)
        except (TypeError, ValueError) as e:
            raise ProvisioningError(
                f"Provisioning response had an invalid sports center id: {sporttia_id!r}",
                code="INVALID_RESPONSE",
                status_code=resp.status_code,
                retryable=False,
            ) from e
        return ProvisioningResult(
            sporttia_id=sporttia_id,
            admin_login=payload.get("adminLogin"),
            admin_password=payload.get("adminPassword"),
            raw=payload,
        )


class UnconfiguredProvisioningClient(ProvisioningClient):
    """Used when no provisioning URL is configured; every attempt fails cleanly."""

    def create_sports_center(self, request: Dict[str, Any]) -> ProvisioningResult:
        raise ProvisioningError(
            "Provisioning API is not configured",
            code="NOT_CONFIGURED",
            retryable=False,
        )
