"""
OpenPhone Service
Keeps clients and leads in sync with OpenPhone contacts
"""

import logging
from typing import Optional

import httpx

from ..config import OPENPHONE_API_KEY, OPENPHONE_API_URL, OPENPHONE_SOURCE
from ..shared.validators import format_phone_e164

logger = logging.getLogger(__name__)


class OpenPhoneService:
    def __init__(
        self,
        api_key: Optional[str] = OPENPHONE_API_KEY,
        base_url: str = OPENPHONE_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        # OpenPhone expects the raw key, without a Bearer prefix
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=15.0,
            transport=self.transport,
            headers={"Authorization": self.api_key or "", "Content-Type": "application/json"},
        )

    async def _find_contact(self, client: httpx.AsyncClient, phone_e164: str) -> Optional[str]:
        """Search is fuzzy, so only an exact phone match counts"""
        try:
            response = await client.get("/contacts", params={"search": phone_e164})
            if response.status_code != 200:
                return None
            for contact in response.json().get("data") or []:
                numbers = (contact.get("defaultFields") or {}).get("phoneNumbers") or []
                if any(n.get("value") == phone_e164 for n in numbers):
                    return contact.get("id")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"⚠️ OpenPhone duplicate check failed, creating anyway: {e}")
        return None

    async def create_contact(
        self,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
        email: Optional[str] = None,
        role: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Return the OpenPhone contact id for this person, creating the contact if needed.

        Sync is best-effort: returns None when OpenPhone is not configured, the
        phone is unusable, or the API rejects the request.
        """
        if not self.api_key:
            logger.info("OpenPhone not configured - skipping contact sync")
            return None

        phone_e164 = format_phone_e164(phone)
        if not phone_e164:
            return None

        payload = {
            "defaultFields": {
                "firstName": first_name or "",
                "lastName": last_name or "",
                "phoneNumbers": [{"value": phone_e164, "name": "mobile"}],
            },
            "source": OPENPHONE_SOURCE,
        }
        if email:
            payload["defaultFields"]["emails"] = [{"value": email, "name": "personal"}]
        if role:
            payload["defaultFields"]["role"] = role
        if external_id:
            payload["externalId"] = external_id

        try:
            async with self._client() as client:
                existing_id = await self._find_contact(client, phone_e164)
                if existing_id:
                    logger.info(f"✅ Found existing OpenPhone contact {existing_id}")
                    return existing_id

                response = await client.post("/contacts", json=payload)
                if response.status_code == 201:
                    contact_id = (response.json().get("data") or {}).get("id")
                    logger.info(f"✅ Created OpenPhone contact {contact_id}")
                    return contact_id
                if response.status_code == 409:
                    logger.info("OpenPhone contact already exists (conflict)")
                else:
                    logger.warning(
                        f"⚠️ OpenPhone contact create failed: HTTP {response.status_code} {response.text[:200]}"
                    )
                return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ OpenPhone API call failed: {e}")
            return None


_openphone_service = OpenPhoneService()


def get_openphone_service() -> OpenPhoneService:
    return _openphone_service
