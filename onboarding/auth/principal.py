"""
Per-request authenticated principal for the admin surface.

The dashboard sends ``Authorization: Bearer <token>``; the token is compared
with ``admin_api_token``. With ``disable_auth`` every request runs as a local
principal.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from onboarding.config import Settings
from onboarding.routers.utils.dependencies import get_app_settings

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    subject: str
    is_local: bool = False


LOCAL_PRINCIPAL = Principal(subject="local", is_local=True)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    if settings.disable_auth:
        return LOCAL_PRINCIPAL

    expected = settings.admin_api_token
    if (
        credentials is None
        or not expected
        or not hmac.compare_digest(credentials.credentials, expected)
    ):
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal(subject="admin")
