"""
Commerce API Models - Request/response bodies for the digital purchases API.

NO DICTIONARIES - All data uses strongly typed models.
"""

from pydantic import Field

from digital_goods.models.base import WireModel


class SkuId(WireModel):
    """Identifier of a SKU as the commerce API reports it."""

    sku_type: str
    id: str
    package_name: str | None = None


class Sku(WireModel):
    """SKU descriptor returned by skus:batchGet. Read-only to this service."""

    sku_id: SkuId
    title: str = ""
    description: str = ""
    formatted_price: str = ""


class SkuBatchGetRequest(WireModel):
    """POST /packages/{packageName}/skus:batchGet request body."""

    conversation_id: str
    sku_type: str
    ids: list[str]


class SkuBatchGetResponse(WireModel):
    """POST /packages/{packageName}/skus:batchGet response body."""

    skus: list[Sku] = Field(default_factory=list)


class EntitlementConsumeRequest(WireModel):
    """POST /conversations/{conversationId}/entitlement:consume request body."""

    purchase_token: str = Field(..., min_length=1)
