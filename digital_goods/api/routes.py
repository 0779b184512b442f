"""
API Routes - Conversation platform webhook.

NO DICTIONARIES - Requests/responses use Pydantic models.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from structlog import get_logger

from digital_goods.api.dependencies import get_purchase_fulfillment
from digital_goods.exceptions import (
    CommerceAPIError,
    ConversationContextError,
    CredentialError,
    UnknownIntentError,
)
from digital_goods.models.conversation import WebhookRequest, WebhookResponse
from digital_goods.observability.logging import log_context
from digital_goods.observability.metrics import metrics
from digital_goods.observability.tracing import trace_operation
from digital_goods.services.conversation import WebhookConversation
from digital_goods.services.fulfillment import PurchaseFulfillment

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/fulfillment",
    response_model=WebhookResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def fulfill(
    request: WebhookRequest,
    fulfillment: PurchaseFulfillment = Depends(get_purchase_fulfillment),
) -> WebhookResponse:
    """
    Handle one intent-classified conversational turn.

    Flow:
    1. Platform matches the user's utterance to an intent
    2. Platform posts the turn here
    3. Handler calls the commerce API if the intent needs it
    4. Response carries the next prompt, list or purchase hand-off

    Auth or commerce API failures fail the turn (HTTP 500); the platform
    shows its own generic error. Nothing is retried.
    """
    conversation = WebhookConversation(request)
    intent = conversation.intent_name

    with log_context(conversation_id=conversation.conversation_id, intent=intent):
        logger.info("intent_received", session=request.session)

        try:
            with trace_operation("intent_fulfillment", intent=intent):
                reply, outcome = await fulfillment.handle(conversation)

        except UnknownIntentError as exc:
            logger.warning("intent_not_handled", known_intents=fulfillment.intents)
            metrics.record_intent(intent, "unhandled")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            ) from exc

        except ConversationContextError as exc:
            logger.warning("conversation_context_missing", field=exc.field)
            metrics.record_intent(intent, "bad_request")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            ) from exc

        except (CredentialError, CommerceAPIError) as exc:
            logger.error("intent_fulfillment_failed", error=str(exc))
            metrics.record_intent(intent, "failed")
            metrics.record_error(type(exc).__name__, intent)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Fulfillment failed",
            ) from exc

        metrics.record_intent(intent, outcome)
        logger.info(
            "intent_fulfilled",
            outcome=outcome,
            expect_user_response=reply.expect_user_response,
        )
        return reply.render()
