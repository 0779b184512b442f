"""
Domain Models - Internal purchase-flow models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

SKU_TYPE_IN_APP = "SKU_TYPE_IN_APP"
SKU_TYPE_PREFIX = "SKU_TYPE_"
CANCEL_OPTION_KEY = "cancel"


def normalize_sku_type(sku_type: str) -> str:
    """
    Reduce a SKU type to its bare form.

    The commerce API says ``SKU_TYPE_IN_APP`` while user entitlements say
    ``IN_APP``; both normalize to ``IN_APP``.
    """
    return sku_type.removeprefix(SKU_TYPE_PREFIX)


class PurchaseStatus(str, Enum):
    """Purchase outcomes reported by the platform after the native purchase UI."""

    OK = "PURCHASE_STATUS_OK"
    ALREADY_OWNED = "PURCHASE_STATUS_ALREADY_OWNED"
    ITEM_UNAVAILABLE = "PURCHASE_STATUS_ITEM_UNAVAILABLE"
    ITEM_CHANGE_REQUESTED = "PURCHASE_STATUS_ITEM_CHANGE_REQUESTED"


@dataclass(frozen=True)
class PurchaseOptionKey:
    """List item key encoding a user selection as ``"{skuType},{id}"``."""

    sku_type: str
    sku_id: str

    def __post_init__(self) -> None:
        """Validate key parts."""
        if not self.sku_type:
            raise ValueError("SKU type required")
        if "," in self.sku_type:
            raise ValueError(f"SKU type cannot contain a comma: {self.sku_type}")
        if not self.sku_id:
            raise ValueError("SKU id required")
        if "," in self.sku_id:
            raise ValueError(f"SKU id cannot contain a comma: {self.sku_id}")

    @classmethod
    def parse(cls, key: str) -> "PurchaseOptionKey":
        """
        Split a list item key into SKU type and id.

        Only the first two comma-separated fields are read; anything after a
        second comma is ignored.

        Raises:
            ValueError: If the key is not of the form ``type,id``
        """
        fields = key.split(",")
        if len(fields) < 2:
            raise ValueError(f"Malformed option key: {key!r}")
        return cls(sku_type=fields[0], sku_id=fields[1])

    def __str__(self) -> str:
        return f"{self.sku_type},{self.sku_id}"


@dataclass(frozen=True)
class EntitlementRecord:
    """A SKU the user already owns, flattened from the platform's entitlement groups."""

    package_name: str
    sku_type: str
    sku_id: str
    purchase_token: str

    def matches(self, option: PurchaseOptionKey) -> bool:
        """Check if this entitlement is for the selected SKU."""
        return self.sku_id == option.sku_id and normalize_sku_type(
            self.sku_type
        ) == normalize_sku_type(option.sku_type)


@dataclass(frozen=True)
class AccessToken:
    """Bearer credential for the commerce API."""

    token: str
    expiry: datetime | None = None

    def __post_init__(self) -> None:
        """Validate token."""
        if not self.token:
            raise ValueError("Access token cannot be empty")

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.token}"
