"""Inventory API client - stock levels and product catalog."""
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from rocketcart.cart.models import Stock
from rocketcart.config import Settings
from rocketcart.errors import InventoryError
from rocketcart.logging import get_logger, sanitize_for_logging

logger = get_logger(__name__)


class InventoryClient:
    """
    Read-only client for the inventory API.

    Endpoints (json-server layout):
        GET /stock/{id}     -> {"id": 1, "amount": 3}
        GET /products/{id}  -> {"id": 1, "title": "...", "price": 179.9, "image": "..."}

    Transport errors (connection, timeouts) are retried with exponential
    backoff; HTTP error statuses are not.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retries: int = 2,
        retry_wait: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self.retry_wait = retry_wait
        self._transport = transport
        # Created lazily, shared by all requests of the session
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryClient":
        return cls(
            settings.inventory_api_url,
            timeout=settings.inventory_timeout,
            retries=settings.inventory_retries,
        )

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
                transport=self._transport,
            )
        return self._http_client

    async def _get(self, path: str) -> httpx.Response:
        client = await self._get_http_client()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retries + 1),
                wait=wait_exponential(multiplier=self.retry_wait, max=5),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    return await client.get(path)
        except httpx.TransportError as e:
            logger.warning(f"Inventory request {path} failed after {self.retries + 1} attempt(s): {e!r}")
            raise InventoryError(f"Inventory API unreachable: {e!r}") from e
        except httpx.HTTPError as e:
            raise InventoryError(f"Inventory request {path} failed: {e!r}") from e
        raise InventoryError(f"Inventory request {path} was not attempted")

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InventoryError(
                f"Invalid JSON from inventory API ({response.request.url.path})",
                status_code=response.status_code,
            ) from e

    async def get_stock(self, product_id: int) -> Optional[Stock]:
        """
        Get available units for a product.

        Returns:
            Stock record, or None when the API has no record for the product

        Raises:
            InventoryError: On transport errors, unexpected statuses or payloads
        """
        response = await self._get(f"/stock/{product_id}")

        if response.status_code == 404:
            logger.info(f"No stock record for product {sanitize_for_logging(product_id)}")
            return None
        if response.status_code != 200:
            raise InventoryError(
                f"Stock query failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        data = self._json(response)
        if not data:
            return None
        if not isinstance(data, dict):
            raise InventoryError("Stock payload is not an object", status_code=response.status_code)

        try:
            return Stock.model_validate({**data, "id": product_id})
        except ValidationError as e:
            raise InventoryError(f"Invalid stock payload: {e.error_count()} error(s)") from e

    async def get_product(self, product_id: int) -> dict[str, Any]:
        """
        Get catalog metadata for a product.

        Raises:
            InventoryError: If the product cannot be fetched
        """
        response = await self._get(f"/products/{product_id}")

        if response.status_code != 200:
            raise InventoryError(
                f"Product query failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        data = self._json(response)
        if not isinstance(data, dict) or not data:
            raise InventoryError("Product payload is not an object", status_code=response.status_code)
        return data

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


__all__ = ["InventoryClient"]
