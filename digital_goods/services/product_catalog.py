"""
Product catalog configuration.

Lists the SKU ids offered to users and which of them are consumable.
"""

from dataclasses import dataclass

from digital_goods.models.domain import SKU_TYPE_IN_APP

# Must match the in-app products configured in the Play Console
DEFAULT_PRODUCT_IDS: tuple[str, ...] = ("premium", "coins")
DEFAULT_CONSUMABLE_PRODUCT_IDS: tuple[str, ...] = ("coins",)


def split_ids(value: str) -> tuple[str, ...]:
    """Parse a comma-separated id list, dropping blanks and duplicates."""
    ids: list[str] = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in ids:
            ids.append(item)
    return tuple(ids)


@dataclass(frozen=True)
class ProductCatalog:
    """Products requested from skus:batchGet."""

    product_ids: tuple[str, ...] = DEFAULT_PRODUCT_IDS
    consumable_product_ids: frozenset[str] = frozenset(DEFAULT_CONSUMABLE_PRODUCT_IDS)
    sku_type: str = SKU_TYPE_IN_APP

    def __post_init__(self) -> None:
        """Validate catalog configuration."""
        if not self.product_ids:
            raise ValueError("At least one product ID required")
        if not self.sku_type:
            raise ValueError("SKU type required")
        unknown = self.consumable_product_ids - set(self.product_ids)
        if unknown:
            raise ValueError(f"Consumable products not in catalog: {sorted(unknown)}")

    @classmethod
    def from_csv(cls, product_ids: str, consumable_product_ids: str) -> "ProductCatalog":
        """Build a catalog from comma-separated settings values."""
        return cls(
            product_ids=split_ids(product_ids),
            consumable_product_ids=frozenset(split_ids(consumable_product_ids)),
        )

    def is_consumable(self, sku_id: str) -> bool:
        return sku_id in self.consumable_product_ids
