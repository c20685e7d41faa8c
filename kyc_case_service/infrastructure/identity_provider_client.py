# Client for the Identity Provider that issues and validates session tokens
import logging
from typing import Optional

import httpx
from fastapi import Depends

from kyc_case_service.app.config import settings
from kyc_case_service.app.dependencies.http_client import get_http_client
from kyc_case_service.app.service.exceptions import AuthenticationError, ConfigurationError
from kyc_case_service.app.service.interfaces.identity_provider import AbstractIdentityProvider
from kyc_case_service.core.models import Actor, SessionContext

logger = logging.getLogger(__name__)

# Identity provider roles that map to the reviewer side of the workflow
REVIEWER_ROLES = frozenset({"admin", "reviewer"})


class IdentityProviderClient(AbstractIdentityProvider):
    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.http_client = http_client
        self.base_url = (base_url or settings.IDENTITY_PROVIDER_URL or "").rstrip("/")

    async def validate_token(self, token: str) -> SessionContext:
        if not token:
            raise AuthenticationError("Missing bearer token.")
        if not self.base_url:
            logger.error("IDENTITY_PROVIDER_URL not set. Cannot validate session tokens.")
            raise ConfigurationError("IDENTITY_PROVIDER_URL is not configured.")

        request_url = f"{self.base_url}/auth/me"
        try:
            response = await self.http_client.get(request_url, headers={"Authorization": f"Bearer {token}"})
        except httpx.RequestError as e:
            logger.error(f"Request error calling identity provider: {e}", exc_info=True)
            raise AuthenticationError(f"Identity provider unreachable: {e}")

        if response.status_code in (401, 403):
            raise AuthenticationError("Session token rejected by identity provider.")
        try:
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            logger.error(f"Unexpected identity provider response {response.status_code}: {e}", exc_info=True)
            raise AuthenticationError(f"Identity provider error: {response.status_code}")

        user = body.get("user", body) if isinstance(body, dict) else {}
        user_id = user.get("id") or user.get("user_id")
        if not user_id:
            raise AuthenticationError("Identity provider response carries no user id.")
        role = Actor.REVIEWER if str(user.get("role", "")).lower() in REVIEWER_ROLES else Actor.APPLICANT
        return SessionContext(user_id=str(user_id), email=user.get("email"), role=role, token=token)


# DI provider for IdentityProviderClient
def get_identity_provider(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> AbstractIdentityProvider:
    return IdentityProviderClient(http_client=http_client)
