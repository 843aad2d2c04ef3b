"""
Base Service Client for External HTTP APIs

Base class for clients that talk to third-party services over HTTP with a
bearer API key (the billing engine, for one).
"""

import httpx
import logging
from typing import Optional, Dict, Any, Union
from abc import ABC

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """
    Base class for external API clients

    Handles:
    1. Base URL and bearer token authentication
    2. One pooled httpx.AsyncClient shared by all calls
    3. Timeout control (default per client, overridable per request)

    Example:
        class LagoClient(BaseServiceClient):
            service_name = "lago"

            async def get_invoice(self, invoice_id: str):
                response = await self.get(f"/api/v1/invoices/{invoice_id}")
                return response.json()
    """

    # Subclasses define this
    service_name: str = None  # e.g. "lago"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client

        Args:
            base_url: Service base URL
            api_key: Bearer token sent on every request
            timeout: Default request timeout (seconds)
            transport: Custom httpx transport (tests inject httpx.MockTransport)
        """
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")
        if not base_url:
            raise ValueError(f"{self.service_name} client requires a base_url")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=self._build_default_headers(api_key),
            transport=transport,
        )

        logger.debug(
            f"Initialized {self.service_name} client: {self.base_url} "
            f"(auth={'bearer' if api_key else 'none'})"
        )

    def _build_default_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        """
        Build default request headers

        Args:
            api_key: Bearer token, omitted from headers when empty

        Returns:
            Headers dict
        """
        headers = {
            "Accept": "application/json",
            "User-Agent": f"isA-Billing-Client/{self.service_name}"
        }

        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        return headers

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================
    # HTTP method wrappers
    # ========================================

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[Union[float, httpx.Timeout]] = None,
    ) -> httpx.Response:
        """GET request"""
        if timeout is None:
            return await self.client.get(path, params=params, headers=headers)
        return await self.client.get(path, params=params, headers=headers, timeout=timeout)

    async def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """POST request"""
        return await self.client.post(path, json=json, headers=headers)

    async def put(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """PUT request"""
        return await self.client.put(path, json=json, headers=headers)


__all__ = ["BaseServiceClient"]
