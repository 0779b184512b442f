"""
Service Account Authorization.

Obtains bearer tokens for the digital purchases API with a service-account JWT.
"""

import asyncio
from typing import Protocol

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from structlog import get_logger

from digital_goods.exceptions import CredentialError
from digital_goods.models.domain import AccessToken

logger = get_logger(__name__)

ACTIONS_PURCHASES_SCOPE = "https://www.googleapis.com/auth/actions.purchases.digital"


class Authorizer(Protocol):
    """Anything that can produce a bearer token for the commerce API."""

    async def authorize(self) -> AccessToken:
        """
        Acquire a fresh access token.

        Raises:
            CredentialError: If authorization fails
        """
        ...


class ServiceAccountAuthorizer:
    """
    Authorizes with a service-account key file.

    A new JWT client is built for every call so no token state is shared
    between webhook invocations.
    """

    def __init__(self, service_account_key_file: str) -> None:
        """
        Initialize authorizer.

        Args:
            service_account_key_file: Path to the service account JSON key
        """
        self.service_account_key_file = service_account_key_file

    def _fetch_token(self) -> AccessToken:
        """Load the key, sign a JWT and exchange it for an access token (blocking)."""
        try:
            credentials = service_account.Credentials.from_service_account_file(  # type: ignore[no-untyped-call]
                self.service_account_key_file,
                scopes=[ACTIONS_PURCHASES_SCOPE],
            )
        except (OSError, ValueError) as exc:
            raise CredentialError(f"Cannot load service account key: {exc}") from exc

        try:
            credentials.refresh(Request())  # type: ignore[no-untyped-call]
        except google.auth.exceptions.GoogleAuthError as exc:
            raise CredentialError(str(exc)) from exc

        if not credentials.token:
            raise CredentialError("Token endpoint returned no access token")

        return AccessToken(token=credentials.token, expiry=credentials.expiry)

    async def authorize(self) -> AccessToken:
        """
        Acquire an access token scoped to digital purchases.

        Returns:
            Access token

        Raises:
            CredentialError: If the key cannot be loaded or the token exchange fails
        """
        try:
            token = await asyncio.to_thread(self._fetch_token)
        except CredentialError as exc:
            logger.error("service_account_authorization_failed", error=exc.message)
            raise

        logger.debug("service_account_authorized", expiry=str(token.expiry))
        return token
