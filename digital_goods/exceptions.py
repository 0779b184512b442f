"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""


class FulfillmentError(Exception):
    """Base exception for all fulfillment errors."""

    pass


class CredentialError(FulfillmentError):
    """Raised when the service account cannot be loaded or authorized."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Auth error: {message}")


class CommerceAPIError(FulfillmentError):
    """Raised when a commerce API request fails or returns a non-success status."""

    def __init__(self, operation: str, message: str, status_code: int | None = None) -> None:
        self.operation = operation
        self.message = message
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"API request error: {operation}{status}: {message}")


class UnknownIntentError(FulfillmentError):
    """Raised when no handler is registered for the matched intent."""

    def __init__(self, intent_name: str) -> None:
        self.intent_name = intent_name
        super().__init__(f"No handler for intent: {intent_name}")


class ConversationContextError(FulfillmentError):
    """Raised when the platform request lacks context a handler depends on."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Conversation request missing {field}")
