# Overview: Pytest coverage for categories, product management and stock adjustments.

from decimal import Decimal

import pytest
from conftest import stock_of
from tindahan.errors import InsufficientStock, NotFound, ValidationError
from tindahan.models import Category, Product, StockAdjustment
from tindahan.models.catalog import DEFAULT_CATEGORIES
from tindahan.services import catalog_service, checkout_service


class TestCategories:

    def test_seed_is_idempotent(self, db_session):
        assert catalog_service.seed_default_categories() == len(DEFAULT_CATEGORIES)
        assert catalog_service.seed_default_categories() == 0
        assert db_session.query(Category).count() == len(DEFAULT_CATEGORIES)

    def test_create_and_list(self, db_session):
        catalog_service.create_category("Rice")
        catalog_service.create_category("Eggs")
        assert [c.name for c in catalog_service.list_categories()] == ["Eggs", "Rice"]

    def test_duplicate_rejected(self, db_session):
        catalog_service.create_category("Rice")
        with pytest.raises(ValidationError):
            catalog_service.create_category("Rice")

    def test_blank_rejected(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_category("  ")


class TestProducts:

    def test_create_stamps_owner(self, db_session, alice):
        product = catalog_service.create_product(
            alice.id,
            {"name": "Bear Brand", "selling_price": Decimal("12.00"), "cost_price": Decimal("10.00"), "stock_qty": 24},
        )
        assert product.owner_id == alice.id
        assert product.stock_qty == 24
        assert product.min_stock_level == 5

    def test_create_with_unknown_category(self, db_session, alice):
        with pytest.raises(NotFound):
            catalog_service.create_product(
                alice.id, {"name": "X", "selling_price": Decimal("1.00"), "category_id": 99999}
            )

    def test_update_fields(self, db_session, alice, product_a):
        catalog_service.update_product(alice.id, product_a.id, {"selling_price": Decimal("15.00"), "barcode": "480001"})
        product = catalog_service.get_product(alice.id, product_a.id)
        assert product.selling_price == Decimal("15.00")
        assert product.barcode == "480001"

    def test_update_cannot_touch_stock(self, db_session, alice, product_a):
        with pytest.raises(ValidationError):
            catalog_service.update_product(alice.id, product_a.id, {"stock_qty": 999})
        assert stock_of(product_a.id) == 50

    def test_update_ignores_owner(self, db_session, alice, bob, product_a):
        catalog_service.update_product(alice.id, product_a.id, {"owner_id": bob.id})
        assert catalog_service.get_product(alice.id, product_a.id).owner_id == alice.id

    def test_low_stock_filter(self, db_session, alice, product_a):
        catalog_service.adjust_stock(alice.id, product_a.id, -46)
        result = catalog_service.list_products(alice.id, low_stock=True)
        assert [p["id"] for p in result["items"]] == [product_a.id]
        assert result["items"][0]["is_low_stock"] is True

    def test_in_stock_filter_and_search(self, db_session, alice, product_a, product_b):
        catalog_service.adjust_stock(alice.id, product_b.id, -20)
        assert [p["id"] for p in catalog_service.list_products(alice.id, in_stock=True)["items"]] == [product_a.id]
        assert [p["id"] for p in catalog_service.list_products(alice.id, search="coke")["items"]] == [product_b.id]

    def test_delete_unsold(self, db_session, alice, product_a):
        catalog_service.adjust_stock(alice.id, product_a.id, 5, reason="Delivery")
        catalog_service.delete_product(alice.id, product_a.id)

        assert db_session.query(Product).filter_by(id=product_a.id).count() == 0
        assert db_session.query(StockAdjustment).count() == 0

    def test_delete_sold_rejected(self, db_session, alice, product_a):
        checkout_service.checkout(alice.id, [{"product_id": product_a.id, "quantity": 1}], "cash", cash_received="14")
        with pytest.raises(ValidationError):
            catalog_service.delete_product(alice.id, product_a.id)
        assert db_session.query(Product).filter_by(id=product_a.id).count() == 1


class TestAdjustStock:

    def test_restock_records_adjustment(self, db_session, alice, product_a):
        adjustment = catalog_service.adjust_stock(alice.id, product_a.id, 12, reason="  Delivery ")

        assert stock_of(product_a.id) == 62
        assert adjustment.quantity_change == 12
        assert adjustment.reason == "Delivery"
        assert adjustment.adjusted_by == alice.id

    def test_shrink(self, db_session, alice, product_a):
        catalog_service.adjust_stock(alice.id, product_a.id, -3, reason="Expired")
        assert stock_of(product_a.id) == 47

    def test_cannot_go_negative(self, db_session, alice, product_a):
        with pytest.raises(InsufficientStock):
            catalog_service.adjust_stock(alice.id, product_a.id, -51)
        assert stock_of(product_a.id) == 50
        assert db_session.query(StockAdjustment).count() == 0

    def test_zero_rejected(self, db_session, alice, product_a):
        with pytest.raises(ValidationError):
            catalog_service.adjust_stock(alice.id, product_a.id, 0)
