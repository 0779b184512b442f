"""
API Dependencies - Wiring of configuration and clients into request handlers.
"""

from fastapi import Depends, Request

from digital_goods.config import FulfillmentConfig, build_fulfillment_config, get_settings
from digital_goods.services.authorizer import Authorizer, ServiceAccountAuthorizer
from digital_goods.services.commerce_client import CommerceClient
from digital_goods.services.fulfillment import PurchaseFulfillment


def get_fulfillment_config() -> FulfillmentConfig:
    """Handler configuration built from application settings."""
    return build_fulfillment_config(get_settings())


def get_authorizer(
    config: FulfillmentConfig = Depends(get_fulfillment_config),
) -> Authorizer:
    """Service account authorizer for the configured key file."""
    return ServiceAccountAuthorizer(config.service_account_key_file)


def get_commerce_client(request: Request) -> CommerceClient:
    """
    Commerce client shared across requests.

    Created by the application lifespan; built on first use when the
    lifespan has not run.
    """
    client: CommerceClient | None = getattr(request.app.state, "commerce_client", None)
    if client is None:
        client = create_commerce_client()
        request.app.state.commerce_client = client
    return client


def create_commerce_client() -> CommerceClient:
    """Build a commerce client from application settings."""
    settings = get_settings()
    return CommerceClient(
        package_name=settings.package_name,
        base_url=settings.commerce_api_base_url,
        timeout_seconds=settings.commerce_api_timeout_seconds,
        retries=settings.commerce_api_retries,
    )


def get_purchase_fulfillment(
    config: FulfillmentConfig = Depends(get_fulfillment_config),
    authorizer: Authorizer = Depends(get_authorizer),
    commerce: CommerceClient = Depends(get_commerce_client),
) -> PurchaseFulfillment:
    """Intent handlers bound to this request's collaborators."""
    return PurchaseFulfillment(config=config, authorizer=authorizer, commerce=commerce)
