"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Critical config is validated at startup.
"""

import json
import sys
from dataclasses import dataclass
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from digital_goods.services.product_catalog import ProductCatalog


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


def format_config_errors(errors: list[str]) -> str:
    """Render startup configuration problems as one block for stderr."""
    rule = "-" * 60
    lines = [rule, "Fulfillment webhook cannot start: invalid configuration", rule]
    lines.extend(f"  - {error}" for error in errors)
    lines.append(rule)
    return "\n".join(["", *lines, ""])


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_title: str = "Digital Goods Fulfillment"
    api_version: str = "0.1.0"
    api_description: str = "Conversational fulfillment webhook for digital purchases"

    # App identity - NO DEFAULT, must match the Play Console listing
    package_name: str = ""
    service_account_key_file: str = ""  # Path to service account JSON key
    # Optional JSON file with packageName / serviceAccountKeyFile keys.
    # Env vars win over values from this file.
    config_file: str | None = None

    # Product catalog (comma-separated)
    product_ids: str = "premium,coins"
    consumable_product_ids: str = "coins"
    consumables_enabled: bool = True  # Consume owned consumables instead of repurchasing

    # Commerce API
    commerce_api_base_url: str = "https://actions.googleapis.com/v3"
    commerce_api_timeout_seconds: float = 10.0
    commerce_api_retries: int = 0  # Failed turns are not retried

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "digital-goods-fulfillment"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start if it cannot identify its package or
        authorize against the commerce API.
        """
        errors: list[str] = []

        if self.config_file:
            errors.extend(self._apply_config_file(Path(self.config_file)))

        if not self.package_name:
            errors.append("PACKAGE_NAME is required but empty or missing")
        if not self.service_account_key_file:
            errors.append("SERVICE_ACCOUNT_KEY_FILE is required but empty or missing")
        if self.commerce_api_retries < 0:
            errors.append(f"COMMERCE_API_RETRIES cannot be negative: {self.commerce_api_retries}")
        if self.commerce_api_timeout_seconds <= 0:
            errors.append(
                f"COMMERCE_API_TIMEOUT_SECONDS must be positive: {self.commerce_api_timeout_seconds}"
            )

        try:
            ProductCatalog.from_csv(self.product_ids, self.consumable_product_ids)
        except ValueError as exc:
            errors.append(f"Invalid product catalog: {exc}")

        if errors:
            message = format_config_errors(errors)
            print(message, file=sys.stderr)
            raise ConfigurationError(message)

        return self

    def _apply_config_file(self, path: Path) -> list[str]:
        """Fill package name and key file path from a JSON config file."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            return [f"CONFIG_FILE could not be read: {exc}"]
        except json.JSONDecodeError as exc:
            return [f"CONFIG_FILE is not valid JSON: {exc}"]

        if not isinstance(data, dict):
            return ["CONFIG_FILE must contain a JSON object"]

        if not self.package_name:
            self.package_name = str(data.get("packageName", ""))
        if not self.service_account_key_file:
            key_file = str(data.get("serviceAccountKeyFile", ""))
            # Relative key paths resolve against the config file location
            if key_file and not Path(key_file).is_absolute():
                key_file = str(path.parent / key_file)
            self.service_account_key_file = key_file
        return []

    @property
    def catalog(self) -> ProductCatalog:
        """Product catalog built from the comma-separated id settings."""
        return ProductCatalog.from_csv(self.product_ids, self.consumable_product_ids)


@dataclass(frozen=True)
class FulfillmentConfig:
    """
    Everything the intent handlers need to know about the app.

    Built once from Settings and passed into handlers explicitly.
    """

    package_name: str
    service_account_key_file: str
    catalog: ProductCatalog
    consumables_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.package_name:
            raise ValueError("Package name required")
        if not self.service_account_key_file:
            raise ValueError("Service account key file required")

    def consumes_before_purchase(self, sku_id: str) -> bool:
        """Check if an owned SKU should be consumed instead of repurchased."""
        return self.consumables_enabled and self.catalog.is_consumable(sku_id)


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings


def build_fulfillment_config(source: Settings) -> FulfillmentConfig:
    """Build the handler configuration from application settings."""
    return FulfillmentConfig(
        package_name=source.package_name,
        service_account_key_file=source.service_account_key_file,
        catalog=source.catalog,
        consumables_enabled=source.consumables_enabled,
    )
