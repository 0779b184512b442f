"""
Conversation Adapter - Narrow view of one platform turn and the reply to it.

Handlers read the turn through ``Conversation`` and write through
``ConversationReply``; neither exposes the raw platform JSON.
"""

from typing import Any, Protocol

from pydantic import ValidationError
from structlog import get_logger

from digital_goods.models.commerce import SkuId
from digital_goods.models.conversation import (
    COMPLETE_PURCHASE_INTENT,
    OPTION_INTENT,
    CompletePurchaseValue,
    CompletePurchaseValueSpec,
    GooglePayload,
    ListSelect,
    OptionValueSpec,
    ResponsePayload,
    RichResponse,
    RichResponseItem,
    SimpleResponse,
    SystemIntent,
    WebhookRequest,
    WebhookResponse,
)
from digital_goods.models.domain import EntitlementRecord

logger = get_logger(__name__)

SCREEN_OUTPUT = "actions.capability.SCREEN_OUTPUT"
OPTION_ARGUMENT = "OPTION"
COMPLETE_PURCHASE_ARGUMENT = "COMPLETE_PURCHASE_VALUE"

# The platform rejects a helper response without a spoken prompt
PLACEHOLDER_PROMPT = "PLACEHOLDER"


class Conversation(Protocol):
    """The fields of a conversational turn the purchase flow reads."""

    @property
    def intent_name(self) -> str: ...

    @property
    def conversation_id(self) -> str | None: ...

    def has_capability(self, name: str) -> bool: ...

    def argument(self, name: str) -> Any: ...

    def entitlements(self) -> list[EntitlementRecord]: ...


class WebhookConversation:
    """Conversation backed by a parsed Dialogflow fulfillment request."""

    def __init__(self, request: WebhookRequest) -> None:
        self.request = request
        self._app_request = request.original_detect_intent_request.payload

    @property
    def intent_name(self) -> str:
        return self.request.query_result.intent.display_name

    @property
    def conversation_id(self) -> str | None:
        return self._app_request.conversation.conversation_id

    def has_capability(self, name: str) -> bool:
        return any(cap.name == name for cap in self._app_request.surface.capabilities)

    def argument(self, name: str) -> Any:
        """
        Look up an input argument by name.

        Returns the extension object for structured arguments, otherwise the
        text or boolean value. None if the argument is absent.
        """
        for user_input in self._app_request.inputs:
            for arg in user_input.arguments:
                if arg.name != name:
                    continue
                if arg.extension is not None:
                    return arg.extension
                if arg.text_value is not None:
                    return arg.text_value
                if arg.bool_value is not None:
                    return arg.bool_value
                return arg.raw_text
        return None

    def entitlements(self) -> list[EntitlementRecord]:
        """Flatten the user's entitlement groups, skipping entries without a purchase token."""
        records: list[EntitlementRecord] = []
        for group in self._app_request.user.package_entitlements:
            for entitlement in group.entitlements:
                details = entitlement.in_app_details
                purchase_data = details.in_app_purchase_data if details else None
                purchase_token = purchase_data.purchase_token if purchase_data else None
                if not purchase_token:
                    logger.debug(
                        "entitlement_without_purchase_token",
                        package_name=group.package_name,
                        sku=entitlement.sku,
                    )
                    continue
                records.append(
                    EntitlementRecord(
                        package_name=group.package_name,
                        sku_type=entitlement.sku_type or "",
                        sku_id=entitlement.sku,
                        purchase_token=purchase_token,
                    )
                )
        return records


def option_argument(conversation: Conversation) -> str | None:
    """The selected list item key, if the turn carries one."""
    value = conversation.argument(OPTION_ARGUMENT)
    return value if isinstance(value, str) and value else None


def purchase_result(conversation: Conversation) -> CompletePurchaseValue | None:
    """The purchase result attached after the native purchase UI, or None if absent/malformed."""
    value = conversation.argument(COMPLETE_PURCHASE_ARGUMENT)
    if not isinstance(value, dict):
        return None
    try:
        return CompletePurchaseValue.model_validate(value)
    except ValidationError:
        return None


class ConversationReply:
    """
    Accumulates prompts and at most one helper for the next turn.

    ``close`` ends the conversation; everything else keeps the mic open.
    """

    def __init__(self) -> None:
        self.messages: list[str] = []
        self.system_intent: SystemIntent | None = None
        self.expect_user_response = True

    def ask(self, text: str) -> None:
        self.messages.append(text)

    def close(self, text: str) -> None:
        self.messages.append(text)
        self.expect_user_response = False

    def ask_list(self, prompt: str, list_select: ListSelect) -> None:
        """Ask the user to pick an item from a visual list."""
        self.ask(prompt)
        self.system_intent = SystemIntent(
            intent=OPTION_INTENT,
            data=OptionValueSpec(list_select=list_select),
        )

    def ask_complete_purchase(self, sku_id: SkuId) -> None:
        """Hand off to the platform's native purchase flow."""
        self.system_intent = SystemIntent(
            intent=COMPLETE_PURCHASE_INTENT,
            data=CompletePurchaseValueSpec(sku_id=sku_id),
        )

    def render(self) -> WebhookResponse:
        """Build the platform response body."""
        messages = list(self.messages)
        if not messages and self.system_intent is not None:
            messages.append(PLACEHOLDER_PROMPT)

        return WebhookResponse(
            payload=ResponsePayload(
                google=GooglePayload(
                    expect_user_response=self.expect_user_response,
                    rich_response=RichResponse(
                        items=[
                            RichResponseItem(simple_response=SimpleResponse(text_to_speech=text))
                            for text in messages
                        ]
                    ),
                    system_intent=self.system_intent,
                )
            )
        )
