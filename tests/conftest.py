"""
Pytest Configuration and Centralized Fixtures.

Provides reusable doubles and builders for testing:
- Fulfillment configuration and product catalog
- Authorizer and commerce client mocks
- Conversation test doubles
- Raw webhook request bodies for API tests
"""

import os
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock

import pytest

# Set required environment variables BEFORE importing package modules
os.environ.setdefault("PACKAGE_NAME", "com.example.digitalgoods")
os.environ.setdefault("SERVICE_ACCOUNT_KEY_FILE", "/tmp/test-service-account.json")
os.environ.setdefault("TRACING_ENABLED", "false")

from digital_goods.config import FulfillmentConfig
from digital_goods.models.commerce import Sku, SkuBatchGetResponse, SkuId
from digital_goods.models.domain import AccessToken, EntitlementRecord
from digital_goods.services.commerce_client import CommerceClient
from digital_goods.services.conversation import SCREEN_OUTPUT
from digital_goods.services.fulfillment import PurchaseFulfillment
from digital_goods.services.product_catalog import ProductCatalog

PACKAGE_NAME = "com.example.digitalgoods"
CONVERSATION_ID = "1234567890"

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def catalog() -> ProductCatalog:
    """Default catalog: premium and coins, coins consumable."""
    return ProductCatalog(
        product_ids=("premium", "coins"),
        consumable_product_ids=frozenset({"coins"}),
    )


@pytest.fixture
def fulfillment_config(catalog: ProductCatalog) -> FulfillmentConfig:
    """Configuration with consumable handling enabled."""
    return FulfillmentConfig(
        package_name=PACKAGE_NAME,
        service_account_key_file="/tmp/test-service-account.json",
        catalog=catalog,
        consumables_enabled=True,
    )


@pytest.fixture
def listing_only_config(catalog: ProductCatalog) -> FulfillmentConfig:
    """Configuration without consumable handling."""
    return FulfillmentConfig(
        package_name=PACKAGE_NAME,
        service_account_key_file="/tmp/test-service-account.json",
        catalog=catalog,
        consumables_enabled=False,
    )


# ============================================================================
# Collaborator Mocks
# ============================================================================


@pytest.fixture
def access_token() -> AccessToken:
    return AccessToken(token="ya29.test-access-token")


@pytest.fixture
def authorizer(access_token: AccessToken) -> AsyncMock:
    """Authorizer that always succeeds."""
    mock = AsyncMock()
    mock.authorize = AsyncMock(return_value=access_token)
    return mock


@pytest.fixture
def commerce() -> AsyncMock:
    """Commerce client mock returning no SKUs by default."""
    mock = AsyncMock(spec=CommerceClient)
    mock.batch_get_skus = AsyncMock(return_value=SkuBatchGetResponse(skus=[]))
    mock.consume_entitlement = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def fulfillment(
    fulfillment_config: FulfillmentConfig, authorizer: AsyncMock, commerce: AsyncMock
) -> PurchaseFulfillment:
    return PurchaseFulfillment(config=fulfillment_config, authorizer=authorizer, commerce=commerce)


def create_sku(
    sku_id: str = "premium",
    sku_type: str = "SKU_TYPE_IN_APP",
    title: str = "Premium",
    description: str = "Unlock everything",
    formatted_price: str = "$1.99",
) -> Sku:
    """Factory function to create SKU descriptors."""
    return Sku(
        sku_id=SkuId(sku_type=sku_type, id=sku_id, package_name=PACKAGE_NAME),
        title=title,
        description=description,
        formatted_price=formatted_price,
    )


# ============================================================================
# Conversation Doubles
# ============================================================================


@dataclass
class FakeConversation:
    """In-memory conversation exposing only what the handlers read."""

    intent_name: str = "Gather information"
    conversation_id: str | None = CONVERSATION_ID
    capabilities: set[str] = field(default_factory=lambda: {SCREEN_OUTPUT})
    arguments: dict[str, Any] = field(default_factory=dict)
    owned: list[EntitlementRecord] = field(default_factory=list)

    def has_capability(self, name: str) -> bool:
        return name in self.capabilities

    def argument(self, name: str) -> Any:
        return self.arguments.get(name)

    def entitlements(self) -> list[EntitlementRecord]:
        return list(self.owned)


def create_entitlement(
    sku_id: str = "coins",
    sku_type: str = "IN_APP",
    package_name: str = PACKAGE_NAME,
    purchase_token: str = "purchase-token-abc",
) -> EntitlementRecord:
    """Factory function to create owned entitlements."""
    return EntitlementRecord(
        package_name=package_name,
        sku_type=sku_type,
        sku_id=sku_id,
        purchase_token=purchase_token,
    )


# ============================================================================
# Raw Webhook Bodies
# ============================================================================


def build_webhook_body(
    intent: str = "Gather information",
    capabilities: tuple[str, ...] = (SCREEN_OUTPUT,),
    conversation_id: str | None = CONVERSATION_ID,
    arguments: list[dict[str, Any]] | None = None,
    package_entitlements: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a Dialogflow v2 fulfillment request body as the platform sends it."""
    conversation: dict[str, Any] = {"type": "ACTIVE"}
    if conversation_id is not None:
        conversation["conversationId"] = conversation_id

    user: dict[str, Any] = {"locale": "en-US"}
    if package_entitlements is not None:
        user["packageEntitlements"] = package_entitlements

    return {
        "responseId": "response-1",
        "session": "projects/test-agent/agent/sessions/session-1",
        "queryResult": {
            "queryText": "buy something",
            "parameters": {},
            "intent": {
                "name": "projects/test-agent/agent/intents/intent-1",
                "displayName": intent,
            },
            "languageCode": "en",
        },
        "originalDetectIntentRequest": {
            "source": "google",
            "version": "2",
            "payload": {
                "user": user,
                "conversation": conversation,
                "inputs": [{"intent": intent, "arguments": arguments or []}],
                "surface": {"capabilities": [{"name": name} for name in capabilities]},
            },
        },
    }


def entitlement_group(
    package_name: str = PACKAGE_NAME,
    sku: str = "coins",
    sku_type: str = "IN_APP",
    purchase_token: str | None = "purchase-token-abc",
) -> dict[str, Any]:
    """One packageEntitlements group holding a single entitlement."""
    purchase_data: dict[str, Any] = {"orderId": "GPA.1234", "productId": sku}
    if purchase_token is not None:
        purchase_data["purchaseToken"] = purchase_token
    return {
        "packageName": package_name,
        "entitlements": [
            {
                "sku": sku,
                "skuType": sku_type,
                "inAppDetails": {"inAppPurchaseData": purchase_data},
            }
        ],
    }
