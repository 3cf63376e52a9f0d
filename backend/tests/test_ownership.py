# Overview: Pytest coverage for ownership partitioning of products, customers, ledger entries and sales.

"""
Ownership Isolation Tests

SECURITY TESTS: Prove that one principal can never read, list or modify
rows owned by another.

Two principals each own products and customers, then we verify that:
1. Lists only ever contain the caller's rows
2. Direct access to a foreign row raises Unauthorized, an absent one NotFound
3. Inserts can never be stamped with another owner
4. Ledger inserts are bound to both the customer and the originating sale
5. Sales are cashier-scoped: cashiers see their own, admins see all
"""

from decimal import Decimal

import pytest
from tindahan.errors import NotFound, Unauthorized
from tindahan.models import Customer, LedgerEntry, Product, Sale
from tindahan.services import (
    catalog_service,
    checkout_service,
    customer_service,
    ledger_service,
    reporting_service,
    sales_service,
)
from tindahan.services.ownership_service import (
    guard_ledger_insert,
    owned_query,
    require_owned,
    stamp_owner,
)


class TestOwnershipHelpers:

    def test_owned_query_filters_by_owner(self, db_session, product_a, bob_product, alice, bob):
        alice_ids = {p.id for p in owned_query(Product, alice.id)}
        bob_ids = {p.id for p in owned_query(Product, bob.id)}

        assert alice_ids == {product_a.id}
        assert bob_ids == {bob_product.id}

    def test_require_owned_own_row(self, db_session, product_a, alice):
        assert require_owned(Product, product_a.id, alice.id).id == product_a.id

    def test_require_owned_foreign_row(self, db_session, bob_product, alice):
        with pytest.raises(Unauthorized):
            require_owned(Product, bob_product.id, alice.id)

    def test_require_owned_absent_row(self, db_session, alice):
        with pytest.raises(NotFound):
            require_owned(Product, 99999, alice.id)

    def test_require_owned_unauthenticated(self, db_session, product_a):
        with pytest.raises(Unauthorized):
            require_owned(Product, product_a.id, None)

    def test_stamp_owner_refuses_other_owner(self, db_session, alice, bob):
        customer = Customer(full_name="Pedro")
        with pytest.raises(Unauthorized):
            stamp_owner(customer, alice.id, requested_owner_id=bob.id)

    def test_stamp_owner_sets_acting_principal(self, db_session, alice):
        customer = stamp_owner(Customer(full_name="Pedro"), alice.id)
        assert customer.owner_id == alice.id

    def test_non_owned_model_rejected(self, db_session, alice):
        with pytest.raises(TypeError):
            owned_query(Sale, alice.id)

    def test_denied_access_is_logged(self, db_session, bob_product, alice, caplog):
        with caplog.at_level("WARNING"):
            with pytest.raises(Unauthorized):
                require_owned(Product, bob_product.id, alice.id)
        assert any("OWNERSHIP_DENIED" in r.getMessage() for r in caplog.records)


class TestProductIsolation:

    def test_list_only_own(self, db_session, product_a, product_b, bob_product, alice, bob):
        alice_names = {p["name"] for p in catalog_service.list_products(alice.id)["items"]}
        bob_names = {p["name"] for p in catalog_service.list_products(bob.id)["items"]}

        assert alice_names == {"Lucky Me Pancit Canton", "Coke 1.5L"}
        assert bob_names == {"Skyflakes"}

    def test_cannot_update_foreign(self, db_session, bob_product, alice):
        with pytest.raises(Unauthorized):
            catalog_service.update_product(alice.id, bob_product.id, {"name": "Hijacked"})

    def test_cannot_delete_foreign(self, db_session, bob_product, alice):
        with pytest.raises(Unauthorized):
            catalog_service.delete_product(alice.id, bob_product.id)

    def test_cannot_adjust_foreign_stock(self, db_session, bob_product, alice):
        with pytest.raises(Unauthorized):
            catalog_service.adjust_stock(alice.id, bob_product.id, 5)

    def test_cannot_create_for_other_owner(self, db_session, alice, bob):
        with pytest.raises(Unauthorized):
            catalog_service.create_product(
                alice.id,
                {"name": "Planted", "selling_price": Decimal("1.00")},
                requested_owner_id=bob.id,
            )

    def test_cannot_sell_foreign_product(self, db_session, bob_product, alice):
        with pytest.raises(Unauthorized):
            checkout_service.checkout(
                alice.id,
                [{"product_id": bob_product.id, "quantity": 1}],
                "cash",
                cash_received="100",
            )


class TestCustomerAndLedgerIsolation:

    def test_customers_listed_per_owner(self, db_session, alice, bob):
        customer_service.create_customer(alice.id, {"full_name": "Maria Santos"})
        customer_service.create_customer(bob.id, {"full_name": "Juan Dela Cruz"})

        alice_names = [c["full_name"] for c in customer_service.list_customers(alice.id)["items"]]
        bob_names = [c["full_name"] for c in customer_service.list_customers(bob.id)["items"]]

        assert alice_names == ["Maria Santos"]
        assert bob_names == ["Juan Dela Cruz"]

    def test_cannot_read_foreign_customer(self, db_session, alice, bob):
        customer = customer_service.create_customer(bob.id, {"full_name": "Juan Dela Cruz"})
        with pytest.raises(Unauthorized):
            customer_service.get_customer(alice.id, customer.id)

    def test_cannot_pay_against_foreign_customer(self, db_session, alice, bob):
        customer = customer_service.create_customer(bob.id, {"full_name": "Juan Dela Cruz"})
        ledger_service.record_credit(bob.id, customer.id, "50")

        with pytest.raises(Unauthorized):
            ledger_service.record_payment(alice.id, customer.id, "10")

        assert ledger_service.customer_balance(bob.id, customer.id) == Decimal("50.00")

    def test_cannot_read_foreign_ledger(self, db_session, alice, bob):
        customer = customer_service.create_customer(bob.id, {"full_name": "Juan Dela Cruz"})
        ledger_service.record_credit(bob.id, customer.id, "50")

        with pytest.raises(Unauthorized):
            ledger_service.list_entries(alice.id, customer.id)

    def test_foreign_entries_never_counted(self, db_session, alice, bob):
        customer = customer_service.create_customer(bob.id, {"full_name": "Juan Dela Cruz"})
        ledger_service.record_credit(bob.id, customer.id, "50")

        assert ledger_service.receivables(alice.id)["count"] == 0
        assert ledger_service.balances_by_customer(alice.id) == {}

    def test_ledger_guard_rejects_foreign_customer(self, db_session, alice, bob):
        customer = customer_service.create_customer(bob.id, {"full_name": "Juan Dela Cruz"})
        entry = LedgerEntry(customer_id=customer.id, kind="credit", amount=Decimal("5.00"))
        with pytest.raises(Unauthorized):
            guard_ledger_insert(entry, alice.id)

    def test_ledger_guard_rejects_other_cashiers_sale(self, db_session, alice, bob, bob_product):
        sale = checkout_service.checkout(
            bob.id, [{"product_id": bob_product.id, "quantity": 1}], "cash", cash_received="10"
        )
        customer = customer_service.create_customer(alice.id, {"full_name": "Maria Santos"})

        entry = LedgerEntry(customer_id=customer.id, sale_id=sale.id, kind="credit", amount=Decimal("8.00"))
        with pytest.raises(Unauthorized):
            guard_ledger_insert(entry, alice.id)

    def test_ledger_guard_forces_created_by(self, db_session, alice, bob):
        customer = customer_service.create_customer(alice.id, {"full_name": "Maria Santos"})

        entry = LedgerEntry(customer_id=customer.id, kind="credit", amount=Decimal("5.00"), created_by=bob.id)
        with pytest.raises(Unauthorized):
            guard_ledger_insert(entry, alice.id)

        entry = LedgerEntry(customer_id=customer.id, kind="credit", amount=Decimal("5.00"))
        guard_ledger_insert(entry, alice.id)
        assert entry.created_by == alice.id
        assert entry.owner_id == alice.id


class TestSaleVisibility:

    def test_cashier_sees_only_own_sales(self, db_session, alice, bob, product_a, bob_product):
        checkout_service.checkout(alice.id, [{"product_id": product_a.id, "quantity": 1}], "cash", cash_received="20")
        bob_sale = checkout_service.checkout(
            bob.id, [{"product_id": bob_product.id, "quantity": 1}], "cash", cash_received="10"
        )

        bob_ids = [s["id"] for s in sales_service.list_sales(bob.id)["items"]]
        assert bob_ids == [bob_sale.id]

    def test_admin_sees_all_sales(self, db_session, alice, bob, product_a, bob_product):
        checkout_service.checkout(alice.id, [{"product_id": product_a.id, "quantity": 1}], "cash", cash_received="20")
        checkout_service.checkout(bob.id, [{"product_id": bob_product.id, "quantity": 1}], "cash", cash_received="10")

        assert sales_service.list_sales(alice.id)["count"] == 2

    def test_cashier_cannot_open_admin_sale(self, db_session, alice, bob, product_a):
        sale = checkout_service.checkout(
            alice.id, [{"product_id": product_a.id, "quantity": 1}], "cash", cash_received="20"
        )
        with pytest.raises(Unauthorized):
            sales_service.get_sale(bob.id, sale.id)

    def test_admin_can_open_cashier_sale(self, db_session, alice, bob, bob_product):
        sale = checkout_service.checkout(
            bob.id, [{"product_id": bob_product.id, "quantity": 2}], "cash", cash_received="20"
        )
        detail = sales_service.get_sale(alice.id, sale.id)
        assert detail["cashier_id"] == bob.id
        assert len(detail["lines"]) == 1

    def test_admin_never_sees_cashier_customer_name(self, db_session, alice, bob, bob_product):
        sale = checkout_service.checkout(
            bob.id, [{"product_id": bob_product.id, "quantity": 1}], "credit", customer="Secret Suki"
        )

        detail = sales_service.get_sale(alice.id, sale.id)
        assert detail["customer_id"] == sale.customer_id
        assert detail["customer_name"] is None
        assert [s["customer_name"] for s in sales_service.list_sales(alice.id)["items"]] == [None]
        recent = reporting_service.dashboard_summary(alice.id)["recent_sales"]
        assert [s["customer_name"] for s in recent] == [None]

        assert sales_service.get_sale(bob.id, sale.id)["customer_name"] == "Secret Suki"

    def test_absent_sale(self, db_session, alice):
        with pytest.raises(NotFound):
            sales_service.get_sale(alice.id, 99999)
