"""
Hypothesis Property-Based Tests for purchase-flow models.

Uses Hypothesis to generate random valid/invalid inputs and verify:
- Option key encoding and parsing
- SKU type normalization
- Purchase status message mapping
- Product catalog validation
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from digital_goods.models.domain import (
    SKU_TYPE_PREFIX,
    EntitlementRecord,
    PurchaseOptionKey,
    PurchaseStatus,
    normalize_sku_type,
)
from digital_goods.services.fulfillment import (
    PURCHASE_STATUS_MESSAGES,
    UNKNOWN_STATUS_MESSAGE,
    purchase_status_message,
)
from digital_goods.services.product_catalog import ProductCatalog

# ============================================================================
# Hypothesis Strategies - Reusable data generators
# ============================================================================

# SKU types never contain the key separator
sku_types = st.text(min_size=1, max_size=40).filter(lambda x: "," not in x)

# SKU types as entitlements report them, without the API prefix
bare_sku_types = sku_types.filter(lambda x: not x.startswith(SKU_TYPE_PREFIX))

# SKU ids never contain the key separator either
sku_ids = st.text(min_size=1, max_size=80).filter(lambda x: "," not in x)

known_statuses = st.sampled_from([member.value for member in PurchaseStatus])

unknown_statuses = st.text(max_size=60).filter(
    lambda x: x not in {member.value for member in PurchaseStatus}
)

product_id_lists = st.lists(
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz_0123456789", min_size=1, max_size=20),
    min_size=1,
    max_size=10,
    unique=True,
)


# ============================================================================
# PurchaseOptionKey
# ============================================================================


class TestPurchaseOptionKeyProperties:
    """Property tests for list item keys."""

    @given(sku_type=sku_types, sku_id=sku_ids)
    def test_parse_recovers_parts(self, sku_type: str, sku_id: str):
        key = PurchaseOptionKey.parse(f"{sku_type},{sku_id}")

        assert key.sku_type == sku_type
        assert key.sku_id == sku_id

    @given(sku_type=sku_types, sku_id=sku_ids)
    def test_str_is_wire_key(self, sku_type: str, sku_id: str):
        key = PurchaseOptionKey(sku_type=sku_type, sku_id=sku_id)

        assert str(key) == f"{sku_type},{sku_id}"
        assert PurchaseOptionKey.parse(str(key)) == key

    @given(sku_type=sku_types, sku_id=sku_ids, rest=st.text(max_size=40))
    def test_fields_after_id_ignored(self, sku_type: str, sku_id: str, rest: str):
        key = PurchaseOptionKey.parse(f"{sku_type},{sku_id},{rest}")

        assert key == PurchaseOptionKey(sku_type=sku_type, sku_id=sku_id)

    @given(text=st.text(max_size=60).filter(lambda x: "," not in x))
    def test_key_without_separator_rejected(self, text: str):
        with pytest.raises(ValueError):
            PurchaseOptionKey.parse(text)

    @given(sku_id=sku_ids)
    def test_empty_type_rejected(self, sku_id: str):
        with pytest.raises(ValueError):
            PurchaseOptionKey.parse(f",{sku_id}")


# ============================================================================
# SKU type normalization
# ============================================================================


class TestSkuTypeProperties:
    """Property tests for SKU type matching."""

    @given(bare=bare_sku_types)
    def test_prefixed_and_bare_types_match(self, bare: str):
        assert normalize_sku_type(f"{SKU_TYPE_PREFIX}{bare}") == normalize_sku_type(bare)

    @given(sku_type=bare_sku_types, sku_id=sku_ids)
    def test_entitlement_matches_own_option(self, sku_type: str, sku_id: str):
        record = EntitlementRecord(
            package_name="com.example.digitalgoods",
            sku_type=sku_type,
            sku_id=sku_id,
            purchase_token="token",
        )
        option = PurchaseOptionKey(sku_type=f"{SKU_TYPE_PREFIX}{sku_type}", sku_id=sku_id)

        assert record.matches(option)

    @given(sku_type=sku_types, sku_id=sku_ids, other_id=sku_ids)
    def test_entitlement_for_other_sku_does_not_match(
        self, sku_type: str, sku_id: str, other_id: str
    ):
        record = EntitlementRecord(
            package_name="com.example.digitalgoods",
            sku_type=sku_type,
            sku_id=other_id,
            purchase_token="token",
        )

        assert record.matches(PurchaseOptionKey(sku_type=sku_type, sku_id=sku_id)) == (
            other_id == sku_id
        )


# ============================================================================
# Purchase status messages
# ============================================================================


class TestPurchaseStatusProperties:
    """Property tests for the closing message mapping."""

    @given(status=known_statuses)
    def test_known_status_uses_table(self, status: str):
        assert purchase_status_message(status) == PURCHASE_STATUS_MESSAGES[PurchaseStatus(status)]

    @given(status=unknown_statuses)
    def test_unknown_status_echoed(self, status: str):
        assert purchase_status_message(status) == UNKNOWN_STATUS_MESSAGE.format(status=status)


# ============================================================================
# ProductCatalog
# ============================================================================


class TestProductCatalogProperties:
    """Property tests for catalog parsing."""

    @given(ids=product_id_lists)
    def test_csv_preserves_order(self, ids: list[str]):
        catalog = ProductCatalog.from_csv(",".join(ids), "")

        assert catalog.product_ids == tuple(ids)
        assert catalog.consumable_product_ids == frozenset()

    @given(ids=product_id_lists, data=st.data())
    def test_consumable_subset_accepted(self, ids: list[str], data: st.DataObject):
        consumables = data.draw(st.lists(st.sampled_from(ids), unique=True))

        catalog = ProductCatalog.from_csv(" , ".join(ids), ",".join(consumables))

        for product_id in ids:
            assert catalog.is_consumable(product_id) == (product_id in consumables)
