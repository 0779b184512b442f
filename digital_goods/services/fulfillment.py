"""
Purchase Fulfillment - Intent handlers for the digital goods purchase flow.

Flow across turns (state lives with the platform, not here):
1. "Gather information": list SKUs from the commerce API
2. actions.intent.OPTION: cancel, consume an owned consumable, or start a purchase
3. actions.intent.COMPLETE_PURCHASE: report the purchase outcome
"""

from collections.abc import Awaitable, Callable, Sequence

from structlog import get_logger

from digital_goods.config import FulfillmentConfig
from digital_goods.exceptions import (
    CommerceAPIError,
    ConversationContextError,
    UnknownIntentError,
)
from digital_goods.models.commerce import Sku, SkuId
from digital_goods.models.conversation import (
    COMPLETE_PURCHASE_INTENT,
    OPTION_INTENT,
    ListSelect,
    ListSelectItem,
    OptionInfo,
)
from digital_goods.models.domain import (
    CANCEL_OPTION_KEY,
    EntitlementRecord,
    PurchaseOptionKey,
    PurchaseStatus,
)
from digital_goods.observability.metrics import metrics
from digital_goods.services.authorizer import Authorizer
from digital_goods.services.commerce_client import SKUS_BATCH_GET_OPERATION, CommerceClient
from digital_goods.services.conversation import (
    COMPLETE_PURCHASE_ARGUMENT,
    SCREEN_OUTPUT,
    Conversation,
    ConversationReply,
    option_argument,
    purchase_result,
)

logger = get_logger(__name__)

GATHER_INFORMATION_INTENT = "Gather information"

NO_SCREEN_MESSAGE = (
    "Sorry, try this on a screen device or select the phone surface in the simulator."
)
PRODUCT_LIST_PROMPT = "Which product do you want to order?"
PRODUCT_LIST_TITLE = "Products"
NO_PRODUCTS_MESSAGE = "No products."
CANCEL_ITEM_TITLE = "Cancel"
CANCEL_ITEM_DESCRIPTION = "Cancel purchase"
CANCELED_MESSAGE = "Canceled"
INVALID_SELECTION_MESSAGE = "Sorry, I didn't get that selection."
CONSUMED_MESSAGE = "You purchased {sku_id} successfully."
PURCHASE_CHECK_LOGS_MESSAGE = "Purchase failed. Please check logs."
UNKNOWN_STATUS_MESSAGE = "Purchase Failed:{status}"

PURCHASE_STATUS_MESSAGES: dict[PurchaseStatus, str] = {
    PurchaseStatus.OK: "Purchase completed! You are all set!",
    PurchaseStatus.ALREADY_OWNED: "Purchase failed. You have already owned the item.",
    PurchaseStatus.ITEM_UNAVAILABLE: "Purchase failed. Item is not available.",
    PurchaseStatus.ITEM_CHANGE_REQUESTED: "Purchase failed. Item change requested.",
}


def purchase_status_message(status: str) -> str:
    """Map a platform purchase status to the closing message."""
    try:
        return PURCHASE_STATUS_MESSAGES[PurchaseStatus(status)]
    except ValueError:
        return UNKNOWN_STATUS_MESSAGE.format(status=status)


def build_product_list(skus: Sequence[Sku]) -> ListSelect:
    """One item per SKU keyed ``"{skuType},{id}"``, followed by the cancel item."""
    items = [
        ListSelectItem(
            option_info=OptionInfo(
                key=str(PurchaseOptionKey(sku_type=sku.sku_id.sku_type, sku_id=sku.sku_id.id))
            ),
            title=sku.title,
            description=f"{sku.description} | {sku.formatted_price}",
        )
        for sku in skus
    ]
    items.append(
        ListSelectItem(
            option_info=OptionInfo(key=CANCEL_OPTION_KEY),
            title=CANCEL_ITEM_TITLE,
            description=CANCEL_ITEM_DESCRIPTION,
        )
    )
    return ListSelect(title=PRODUCT_LIST_TITLE, items=items)


def find_entitlement(
    entitlements: Sequence[EntitlementRecord],
    package_name: str,
    option: PurchaseOptionKey,
) -> EntitlementRecord | None:
    """Find the user's entitlement for the selected SKU within this app's package."""
    for entitlement in entitlements:
        if entitlement.package_name == package_name and entitlement.matches(option):
            return entitlement
    return None


class PurchaseFulfillment:
    """
    Handles the purchase-flow intents.

    Each call is stateless: everything needed comes from the conversation
    and the injected configuration.
    """

    def __init__(
        self,
        config: FulfillmentConfig,
        authorizer: Authorizer,
        commerce: CommerceClient,
    ) -> None:
        self.config = config
        self.authorizer = authorizer
        self.commerce = commerce
        self._handlers: dict[
            str, Callable[[Conversation, ConversationReply], Awaitable[str]]
        ] = {
            GATHER_INFORMATION_INTENT: self.gather_information,
            OPTION_INTENT: self.select_option,
            COMPLETE_PURCHASE_INTENT: self.complete_purchase,
        }

    @property
    def intents(self) -> list[str]:
        return list(self._handlers)

    async def handle(self, conversation: Conversation) -> tuple[ConversationReply, str]:
        """
        Dispatch a turn to its intent handler.

        Returns:
            The reply and a short outcome label for logs and metrics

        Raises:
            UnknownIntentError: If no handler is registered for the intent
            CredentialError: If authorization fails
            CommerceAPIError: If a commerce API call fails or returns an unusable SKU
        """
        handler = self._handlers.get(conversation.intent_name)
        if handler is None:
            raise UnknownIntentError(conversation.intent_name)

        reply = ConversationReply()
        outcome = await handler(conversation, reply)
        return reply, outcome

    async def gather_information(
        self, conversation: Conversation, reply: ConversationReply
    ) -> str:
        """List purchasable SKUs, or explain that a screen is needed."""
        if not conversation.has_capability(SCREEN_OUTPUT):
            reply.ask(NO_SCREEN_MESSAGE)
            return "no_screen"

        conversation_id = self._require_conversation_id(conversation)
        catalog = self.config.catalog
        token = await self.authorizer.authorize()
        result = await self.commerce.batch_get_skus(
            token,
            conversation_id=conversation_id,
            sku_type=catalog.sku_type,
            ids=catalog.product_ids,
        )

        if not result.skus:
            reply.ask(NO_PRODUCTS_MESSAGE)
            return "no_products"

        try:
            product_list = build_product_list(result.skus)
        except ValueError as exc:
            logger.error("skus_batch_get_malformed_sku", error=str(exc))
            raise CommerceAPIError(SKUS_BATCH_GET_OPERATION, f"Malformed SKU: {exc}") from exc

        reply.ask_list(PRODUCT_LIST_PROMPT, product_list)
        return "listed"

    async def select_option(self, conversation: Conversation, reply: ConversationReply) -> str:
        """Cancel, consume an owned consumable, or start the native purchase flow."""
        key = option_argument(conversation)
        if key == CANCEL_OPTION_KEY:
            reply.ask(CANCELED_MESSAGE)
            return "canceled"

        try:
            option = PurchaseOptionKey.parse(key or "")
        except ValueError:
            logger.warning("invalid_option_selected", option=key)
            reply.ask(INVALID_SELECTION_MESSAGE)
            return "invalid_selection"

        if self.config.consumes_before_purchase(option.sku_id):
            entitlement = find_entitlement(
                conversation.entitlements(), self.config.package_name, option
            )
            if entitlement is not None:
                await self._consume(conversation, entitlement)
                reply.close(CONSUMED_MESSAGE.format(sku_id=option.sku_id))
                return "consumed"

        logger.info("purchase_requested", sku_type=option.sku_type, sku_id=option.sku_id)
        reply.ask_complete_purchase(
            SkuId(
                sku_type=option.sku_type,
                id=option.sku_id,
                package_name=self.config.package_name,
            )
        )
        return "purchase_requested"

    async def complete_purchase(
        self, conversation: Conversation, reply: ConversationReply
    ) -> str:
        """Close the conversation with a message for the reported purchase status."""
        result = purchase_result(conversation)
        logger.info(
            "purchase_decision_received",
            decision=conversation.argument(COMPLETE_PURCHASE_ARGUMENT),
        )

        if result is None:
            metrics.record_purchase_outcome("missing")
            reply.close(PURCHASE_CHECK_LOGS_MESSAGE)
            return "missing_result"

        status = result.purchase_status
        reply.close(purchase_status_message(status))
        if status not in {member.value for member in PurchaseStatus}:
            metrics.record_purchase_outcome("unknown")
            return "unknown_status"

        metrics.record_purchase_outcome(status)
        return "completed"

    async def _consume(self, conversation: Conversation, entitlement: EntitlementRecord) -> None:
        conversation_id = self._require_conversation_id(conversation)
        logger.info(
            "consuming_entitlement",
            sku_type=entitlement.sku_type,
            sku_id=entitlement.sku_id,
        )
        token = await self.authorizer.authorize()
        await self.commerce.consume_entitlement(
            token,
            conversation_id=conversation_id,
            purchase_token=entitlement.purchase_token,
        )

    @staticmethod
    def _require_conversation_id(conversation: Conversation) -> str:
        conversation_id = conversation.conversation_id
        if not conversation_id:
            raise ConversationContextError("conversation.conversationId")
        return conversation_id
