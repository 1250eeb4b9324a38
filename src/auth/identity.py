"""Identity provider: token verification and account creation."""

import logging
from abc import ABC, abstractmethod

import httpx

from src.errors import StorageUnavailable, ValidationError

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """Opaque identity oracle. Passwords and sessions never reach this app."""

    @abstractmethod
    async def verify(self, token: str) -> str | None:
        """Return the user id the access token belongs to, or None if invalid."""
        pass

    @abstractmethod
    async def create_user(self, email: str, password: str, name: str) -> dict:
        """Create an auth identity and return the provider's user record.

        The record always has an "id" key. Raises ValidationError when the
        provider rejects the request.
        """
        pass

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class SupabaseIdentityProvider(IdentityProvider):
    """Client for the Supabase GoTrue auth REST API."""

    def __init__(self, base_url: str, anon_key: str, service_role_key: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/auth/v1",
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self._client

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("msg")
            or body.get("message")
            or body.get("error_description")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    async def verify(self, token: str) -> str | None:
        if not token:
            return None

        client = await self._get_client()
        try:
            response = await client.get(
                "/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise StorageUnavailable("identity provider unreachable") from e

        if response.status_code in (401, 403):
            return None
        if not response.is_success:
            logger.error(f"Token verification error: {response.status_code} - {response.text}")
            if response.status_code >= 500:
                raise StorageUnavailable("identity provider error")
            return None

        return response.json().get("id")

    async def create_user(self, email: str, password: str, name: str) -> dict:
        client = await self._get_client()
        payload = {
            "email": email,
            "password": password,
            "user_metadata": {"name": name},
            # No email server is configured, so accounts are confirmed up front
            "email_confirm": True,
        }
        try:
            response = await client.post(
                "/admin/users",
                json=payload,
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {self.service_role_key}",
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise StorageUnavailable("identity provider unreachable") from e

        if response.status_code >= 500:
            logger.error(f"Sign up error: {response.status_code} - {response.text}")
            raise StorageUnavailable("identity provider error")
        if not response.is_success:
            message = self._error_message(response)
            logger.info(f"Sign up rejected for {email}: {message}")
            raise ValidationError(message)

        return response.json()

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
