"""
This module provides the communication client for the remote Impact Partner Service (REST API).
The client implements the same contract as the in-memory partner store, so the quote
orchestrator can use either. Transport and protocol failures are translated into the
quote service's own error types.
"""

import logging
from typing import List, Optional

import httpx
import pydantic

from .config import IMPACT_PARTNER_SERVICE_URL
from .entities import ImpactPartner
from .errors import InternalError, NotFoundError

log = logging.getLogger(__name__)

DOMAIN = "impact_partner"


class ImpactPartnerClient:
    """
    Client for the Impact Partner Service (REST API).
    Reads the partner catalogue: GET /api/impact-partners and GET /api/impact-partners/{id}.
    """

    def __init__(self, base_url: str = IMPACT_PARTNER_SERVICE_URL, client: Optional[httpx.Client] = None,
                 timeout: float = 10.0):
        """
        Initializes the HTTP client with the configured timeout.

        Args:
            base_url (str): Root URL of the partner service, e.g. "http://impact_partner_service:8002".
            client (httpx.Client, optional): Pre-built client (tests pass one with a MockTransport).
                A supplied client is not closed by this instance.
            timeout (float): Request timeout in seconds.
        """
        self._owns_client = client is None
        self.client = client or httpx.Client(base_url=base_url, timeout=httpx.Timeout(timeout))

    def __del__(self):
        """Closes the HTTP client session if this instance created it."""
        if getattr(self, "_owns_client", False):
            self.client.close()

    def close(self):
        if self._owns_client:
            self.client.close()

    def _get(self, path: str):
        try:
            response = self.client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(DOMAIN, f"partner not found ({path})") from e
            log.error(f"Impact Partner Service returned HTTP {e.response.status_code} for {path}.")
            raise InternalError(DOMAIN, f"unexpected status {e.response.status_code}", cause=e) from e
        except httpx.HTTPError as e:
            log.error(f"Impact Partner Service not reachable ({e}).")
            raise InternalError(DOMAIN, "failed to make request", cause=e) from e
        except ValueError as e:
            raise InternalError(DOMAIN, "failed to decode response", cause=e) from e

    def get_all(self) -> List[ImpactPartner]:
        """
        Fetches the complete partner catalogue.

        Returns:
            List[ImpactPartner]: All partners known to the remote service.

        Raises:
            InternalError: On transport errors, non-200 responses or malformed payloads.
        """
        data = self._get("/api/impact-partners")
        try:
            return [ImpactPartner.model_validate(item) for item in data]
        except (pydantic.ValidationError, TypeError) as e:
            raise InternalError(DOMAIN, "failed to decode response", cause=e) from e

    def get_by_id(self, partner_id: str) -> ImpactPartner:
        """
        Fetches a single partner.

        Raises:
            NotFoundError: If the service answers 404.
            InternalError: On any other failure.
        """
        data = self._get(f"/api/impact-partners/{partner_id}")
        try:
            return ImpactPartner.model_validate(data)
        except pydantic.ValidationError as e:
            raise InternalError(DOMAIN, "failed to decode response", cause=e) from e
