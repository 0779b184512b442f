"""
Commerce API Client - Digital purchases REST API for conversational apps.

NO DICTIONARIES - All request/response bodies use strongly typed models.
"""

import time
from collections.abc import Sequence

import httpx
from pydantic import ValidationError
from structlog import get_logger

from digital_goods.exceptions import CommerceAPIError
from digital_goods.models.base import WireModel
from digital_goods.models.commerce import (
    EntitlementConsumeRequest,
    SkuBatchGetRequest,
    SkuBatchGetResponse,
)
from digital_goods.models.domain import AccessToken
from digital_goods.observability.metrics import metrics
from digital_goods.observability.tracing import instrument_httpx

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://actions.googleapis.com/v3"

SKUS_BATCH_GET_OPERATION = "skus_batch_get"
ENTITLEMENT_CONSUME_OPERATION = "entitlement_consume"


class CommerceClient:
    """
    Client for SKU lookup and entitlement consumption.

    Every call is a single attempt unless ``retries`` is raised; the only
    retries ever made are transport-level connection retries.
    """

    def __init__(
        self,
        package_name: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        retries: int = 0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.package_name = package_name
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=httpx.AsyncHTTPTransport(retries=self.retries),
            )
            instrument_httpx(self._http_client)
        return self._http_client

    async def batch_get_skus(
        self,
        token: AccessToken,
        conversation_id: str,
        sku_type: str,
        ids: Sequence[str],
    ) -> SkuBatchGetResponse:
        """
        Fetch SKU metadata for a fixed set of product ids.

        Args:
            token: Bearer credential
            conversation_id: Platform conversation the request belongs to
            sku_type: SKU type of every requested id
            ids: Product ids

        Returns:
            SKUs known to the commerce API (possibly empty)

        Raises:
            CommerceAPIError: If the request fails or the body is malformed
        """
        operation = SKUS_BATCH_GET_OPERATION
        url = f"{self.base_url}/packages/{self.package_name}/skus:batchGet"
        body = SkuBatchGetRequest(conversation_id=conversation_id, sku_type=sku_type, ids=list(ids))

        response = await self._post(operation, url, token, body)

        try:
            result = SkuBatchGetResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("skus_batch_get_invalid_body", error=str(exc), body=response.text[:500])
            raise CommerceAPIError(operation, f"Invalid response body: {exc}") from exc

        logger.info("skus_batch_get_completed", sku_count=len(result.skus))
        return result

    async def consume_entitlement(
        self,
        token: AccessToken,
        conversation_id: str,
        purchase_token: str,
    ) -> None:
        """
        Consume an owned consumable so it can be purchased again.

        Args:
            token: Bearer credential
            conversation_id: Platform conversation the request belongs to
            purchase_token: Purchase token from the user's entitlement

        Raises:
            CommerceAPIError: If consumption fails
        """
        operation = ENTITLEMENT_CONSUME_OPERATION
        url = f"{self.base_url}/conversations/{conversation_id}/entitlement:consume"
        body = EntitlementConsumeRequest(purchase_token=purchase_token)

        await self._post(operation, url, token, body)

        logger.info("entitlement_consumed", conversation_id=conversation_id)

    async def _post(
        self,
        operation: str,
        url: str,
        token: AccessToken,
        body: WireModel,
    ) -> httpx.Response:
        """Send one authenticated POST and translate failures into CommerceAPIError."""
        start_time = time.perf_counter()
        try:
            response = await self.http_client.post(
                url,
                json=body.to_wire(),
                headers={"Authorization": token.authorization_header},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            metrics.record_commerce_call(operation, False, time.perf_counter() - start_time)
            logger.error(
                "commerce_api_request_failed",
                operation=operation,
                status=exc.response.status_code,
                error=exc.response.text[:500],
            )
            raise CommerceAPIError(
                operation, exc.response.text or exc.response.reason_phrase, exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            metrics.record_commerce_call(operation, False, time.perf_counter() - start_time)
            logger.error("commerce_api_transport_error", operation=operation, error=str(exc))
            raise CommerceAPIError(operation, str(exc) or type(exc).__name__) from exc

        metrics.record_commerce_call(operation, True, time.perf_counter() - start_time)
        logger.info(
            "commerce_api_response",
            operation=operation,
            status=response.status_code,
            reason=response.reason_phrase,
        )
        logger.debug("commerce_api_response_body", operation=operation, body=response.text)
        return response

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
