"""
Mercury Service
Read-only client for the Mercury banking API
"""

import logging
from typing import Any, Optional

import httpx

from ..config import MERCURY_API_KEY, MERCURY_API_URL

logger = logging.getLogger(__name__)


class MercuryAPIError(Exception):
    """Non-2xx response from Mercury"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class MercuryService:
    def __init__(
        self,
        api_key: Optional[str] = MERCURY_API_KEY,
        base_url: str = MERCURY_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: Optional[dict] = None) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            response = await client.get(
                f"{self.base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"},
            )
        if response.status_code != 200:
            try:
                body = response.json()
                message = body.get("message") or body.get("error") or response.text
            except ValueError:
                message = response.text
            logger.error(f"❌ Mercury API {path} failed: HTTP {response.status_code} {message}")
            raise MercuryAPIError(response.status_code, message or f"HTTP {response.status_code}")
        return response.json()

    async def get_accounts(self) -> list[dict[str, Any]]:
        data = await self._get("/accounts")
        return data.get("accounts", [])

    async def get_transactions(self, account_id: str, limit: int = 1000) -> list[dict[str, Any]]:
        data = await self._get(f"/account/{account_id}/transactions", params={"limit": limit})
        return data.get("transactions", [])


_mercury_service = MercuryService()


def get_mercury_service() -> MercuryService:
    return _mercury_service
