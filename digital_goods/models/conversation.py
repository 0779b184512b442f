"""
Conversation Models - Dialogflow v2 fulfillment request and response bodies.

Only the fields read or written by the purchase flow are modeled; anything
else the platform sends is ignored.
"""

from typing import Any

from pydantic import Field

from digital_goods.models.base import WireModel
from digital_goods.models.commerce import SkuId

OPTION_VALUE_SPEC_TYPE = "type.googleapis.com/google.actions.v2.OptionValueSpec"
COMPLETE_PURCHASE_VALUE_SPEC_TYPE = (
    "type.googleapis.com/google.actions.transactions.v3.CompletePurchaseValueSpec"
)

OPTION_INTENT = "actions.intent.OPTION"
COMPLETE_PURCHASE_INTENT = "actions.intent.COMPLETE_PURCHASE"


# ============================================================================
# Request Models
# ============================================================================


class Capability(WireModel):
    name: str


class Surface(WireModel):
    capabilities: list[Capability] = Field(default_factory=list)


class Argument(WireModel):
    """Argument attached to an input. Exactly one value field is normally set."""

    name: str
    raw_text: str | None = None
    text_value: str | None = None
    bool_value: bool | None = None
    extension: dict[str, Any] | None = None


class Input(WireModel):
    intent: str | None = None
    arguments: list[Argument] = Field(default_factory=list)


class ConversationInfo(WireModel):
    conversation_id: str | None = None
    type: str | None = None


class InAppPurchaseData(WireModel):
    purchase_token: str | None = None
    order_id: str | None = None
    product_id: str | None = None


class InAppDetails(WireModel):
    in_app_purchase_data: InAppPurchaseData | None = None
    in_app_data_signature: str | None = None


class Entitlement(WireModel):
    """A SKU the user owns. ``sku`` is the product id."""

    sku: str
    sku_type: str | None = None
    in_app_details: InAppDetails | None = None


class PackageEntitlements(WireModel):
    """Entitlements the user holds for one Android package."""

    package_name: str
    entitlements: list[Entitlement] = Field(default_factory=list)


class User(WireModel):
    user_id: str | None = None
    locale: str | None = None
    package_entitlements: list[PackageEntitlements] = Field(default_factory=list)


class AppRequest(WireModel):
    """Actions on Google request embedded in the Dialogflow request."""

    user: User = Field(default_factory=User)
    conversation: ConversationInfo = Field(default_factory=ConversationInfo)
    inputs: list[Input] = Field(default_factory=list)
    surface: Surface = Field(default_factory=Surface)


class OriginalDetectIntentRequest(WireModel):
    source: str | None = None
    version: str | None = None
    payload: AppRequest = Field(default_factory=AppRequest)


class Intent(WireModel):
    name: str | None = None
    display_name: str


class QueryResult(WireModel):
    query_text: str | None = None
    action: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    intent: Intent
    language_code: str | None = None


class WebhookRequest(WireModel):
    """POST /fulfillment request body."""

    response_id: str | None = None
    session: str | None = None
    query_result: QueryResult
    original_detect_intent_request: OriginalDetectIntentRequest = Field(
        default_factory=OriginalDetectIntentRequest
    )


class CompletePurchaseValue(WireModel):
    """Extension value of the COMPLETE_PURCHASE_VALUE argument."""

    type_: str | None = Field(None, alias="@type")
    purchase_status: str = Field(..., min_length=1)


# ============================================================================
# Response Models
# ============================================================================


class SimpleResponse(WireModel):
    text_to_speech: str
    display_text: str | None = None


class RichResponseItem(WireModel):
    simple_response: SimpleResponse


class RichResponse(WireModel):
    items: list[RichResponseItem] = Field(default_factory=list)


class OptionInfo(WireModel):
    key: str
    synonyms: list[str] = Field(default_factory=list)


class ListSelectItem(WireModel):
    option_info: OptionInfo
    title: str
    description: str | None = None


class ListSelect(WireModel):
    title: str | None = None
    items: list[ListSelectItem]


class OptionValueSpec(WireModel):
    type_: str = Field(OPTION_VALUE_SPEC_TYPE, alias="@type")
    list_select: ListSelect


class CompletePurchaseValueSpec(WireModel):
    type_: str = Field(COMPLETE_PURCHASE_VALUE_SPEC_TYPE, alias="@type")
    sku_id: SkuId


class SystemIntent(WireModel):
    intent: str
    data: OptionValueSpec | CompletePurchaseValueSpec


class GooglePayload(WireModel):
    expect_user_response: bool
    rich_response: RichResponse
    system_intent: SystemIntent | None = None


class ResponsePayload(WireModel):
    google: GooglePayload


class WebhookResponse(WireModel):
    """POST /fulfillment response body."""

    payload: ResponsePayload
