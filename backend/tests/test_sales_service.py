"""
Sales workflow tests.

Covers creation (stock taken, prices snapshot, all-or-nothing), the
PENDING -> FINALIZED / CANCELLED state machine and sale numbering.
"""

import re
from decimal import Decimal

import pytest

from hortifruti.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from hortifruti.models import Address, Product, Sale, SaleItem, StockMovement
from hortifruti.services import sales_service, stock_service


def _counters(db_session, product_id):
    db_session.expire_all()
    p = db_session.get(Product, product_id)
    return p.initial_stock, p.cumulative_in, p.cumulative_out


# =============================================================================
# CREATE
# =============================================================================


class TestCreateSale:
    def test_takes_stock_and_snapshots_price(self, db_session, make_product, customer):
        product = make_product(initial_stock="10", unit_price="4.50")

        sale = sales_service.create_sale(customer.id, [{"product_id": product.id, "quantity": 5}])

        assert sale.status == "PENDING"
        assert sale.total_amount == Decimal("22.50")
        assert sale.discount == Decimal("0")
        assert sale.final_amount == Decimal("22.50")
        assert sale.payment_method is None

        _, _, out = _counters(db_session, product.id)
        assert out == Decimal("5")
        assert stock_service.get_current_stock(product.id) == Decimal("5")

        item = sale.items[0]
        assert item.unit_price == Decimal("4.50")
        assert item.subtotal == Decimal("22.50")
        assert item.item_total == item.subtotal

        movement = db_session.query(StockMovement).filter_by(product_id=product.id, kind="OUT").one()
        assert movement.quantity == Decimal("5")
        assert movement.sale_id == sale.id

    def test_price_change_does_not_touch_existing_sale(self, db_session, make_product, customer):
        product = make_product(unit_price="3.00")
        sale = sales_service.create_sale(customer.id, [(product.id, 2)])

        product.unit_price = Decimal("9.99")
        db_session.commit()

        db_session.expire_all()
        fresh = db_session.get(Sale, sale.id)
        assert fresh.items[0].unit_price == Decimal("3.00")
        assert fresh.total_amount == Decimal("6.00")

    def test_discount(self, db_session, make_product, customer):
        product = make_product(unit_price="10.00")
        sale = sales_service.create_sale(customer.id, [(product.id, 3)], discount="5.50")
        assert sale.total_amount == Decimal("30.00")
        assert sale.final_amount == Decimal("24.50")

    @pytest.mark.parametrize("discount", ["-1", "30.01"])
    def test_rejects_out_of_range_discount(self, db_session, make_product, customer, discount):
        product = make_product(unit_price="10.00")
        with pytest.raises(ValidationError):
            sales_service.create_sale(customer.id, [(product.id, 3)], discount=discount)
        assert stock_service.get_current_stock(product.id) == Decimal("100")

    def test_fractional_quantity(self, db_session, make_product, customer):
        product = make_product(unit_price="7.90", initial_stock="3")
        sale = sales_service.create_sale(customer.id, [(product.id, "1.25")])
        assert sale.total_amount == Decimal("9.88")
        assert stock_service.get_current_stock(product.id) == Decimal("1.75")

    def test_uses_principal_address_by_default(self, db_session, make_product, customer):
        product = make_product()
        sale = sales_service.create_sale(customer.id, [(product.id, 1)])
        principal = db_session.query(Address).filter_by(customer_id=customer.id, principal=True).one()
        assert sale.delivery_address_id == principal.id

    def test_no_address_when_customer_has_none(self, db_session, make_product, other_customer):
        product = make_product()
        sale = sales_service.create_sale(other_customer.id, [(product.id, 1)])
        assert sale.delivery_address_id is None

    def test_explicit_address_must_belong_to_customer(self, db_session, make_product, customer, other_customer):
        product = make_product()
        foreign = Address(customer_id=other_customer.id, street="Rua B", principal=True)
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(ValidationError):
            sales_service.create_sale(customer.id, [(product.id, 1)], delivery_address_id=foreign.id)
        with pytest.raises(NotFoundError):
            sales_service.create_sale(customer.id, [(product.id, 1)], delivery_address_id=9999)

        assert db_session.query(Sale).count() == 0

    def test_unknown_customer(self, db_session, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            sales_service.create_sale(9999, [(product.id, 1)])

    def test_unknown_product(self, db_session, customer):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(customer.id, [(9999, 1)])

    def test_empty_items(self, db_session, customer):
        with pytest.raises(ValidationError):
            sales_service.create_sale(customer.id, [])

    @pytest.mark.parametrize("item", [7, (1,), (1, 2, 3), "12"])
    def test_malformed_item_shape(self, db_session, make_product, customer, item):
        make_product()
        with pytest.raises(ValidationError):
            sales_service.create_sale(customer.id, [item])
        assert db_session.query(Sale).count() == 0

    @pytest.mark.parametrize("quantity", [0, -2, "x"])
    def test_invalid_quantity(self, db_session, make_product, customer, quantity):
        product = make_product()
        with pytest.raises(ValidationError):
            sales_service.create_sale(customer.id, [(product.id, quantity)])


class TestCreateSaleIsAtomic:
    def test_insufficient_stock_changes_nothing(self, db_session, make_product, customer):
        ok = make_product(name="Tomate", initial_stock="10")
        short = make_product(name="Cebola", initial_stock="1")
        before_ok = _counters(db_session, ok.id)
        before_short = _counters(db_session, short.id)

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale(customer.id, [(ok.id, 2), (short.id, 5)])

        assert exc.value.details["product_id"] == short.id
        assert _counters(db_session, ok.id) == before_ok
        assert _counters(db_session, short.id) == before_short
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert db_session.query(StockMovement).filter(StockMovement.kind != "INITIAL").count() == 0

    def test_repeated_product_is_checked_in_total(self, db_session, make_product, customer):
        product = make_product(initial_stock="5")
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(customer.id, [(product.id, 3), (product.id, 3)])
        assert stock_service.get_current_stock(product.id) == Decimal("5")

    def test_guarded_decrement_rolls_back_earlier_items(self, db_session, make_product, customer, monkeypatch):
        # Simulates stock taken by a concurrent sale after the pre-check passed
        first = make_product(name="Batata", initial_stock="10")
        second = make_product(name="Cenoura", initial_stock="1")
        monkeypatch.setattr(sales_service, "_check_stock", lambda products, items: None)

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(customer.id, [(first.id, 4), (second.id, 2)])

        assert stock_service.get_current_stock(first.id) == Decimal("10")
        assert stock_service.get_current_stock(second.id) == Decimal("1")
        assert db_session.query(Sale).count() == 0
        assert db_session.query(StockMovement).filter_by(kind="OUT").count() == 0


# =============================================================================
# FINALIZE / CANCEL
# =============================================================================


class TestStateMachine:
    def test_finalize(self, db_session, make_product, customer):
        product = make_product(initial_stock="10")
        sale = sales_service.create_sale(customer.id, [(product.id, 5)])
        after_create = _counters(db_session, product.id)

        sale = sales_service.finalize_sale(sale.id, "pix")

        assert sale.status == "FINALIZED"
        assert sale.payment_method == "pix"
        assert sale.finalized_at is not None
        assert _counters(db_session, product.id) == after_create

    def test_finalize_twice(self, db_session, make_product, customer):
        product = make_product()
        sale = sales_service.create_sale(customer.id, [(product.id, 1)])
        sales_service.finalize_sale(sale.id, "pix")

        with pytest.raises(InvalidStateTransitionError):
            sales_service.finalize_sale(sale.id, "dinheiro")

        db_session.expire_all()
        fresh = db_session.get(Sale, sale.id)
        assert fresh.status == "FINALIZED"
        assert fresh.payment_method == "pix"

    def test_finalize_by_number(self, db_session, make_product, customer):
        product = make_product()
        sale = sales_service.create_sale(customer.id, [(product.id, 1)])
        finalized = sales_service.finalize_sale_by_number(sale.sale_number, "cartao")
        assert finalized.id == sale.id
        assert finalized.status == "FINALIZED"

    def test_finalize_requires_payment_method(self, db_session, make_product, customer):
        product = make_product()
        sale = sales_service.create_sale(customer.id, [(product.id, 1)])
        with pytest.raises(ValidationError):
            sales_service.finalize_sale(sale.id, "  ")
        assert db_session.get(Sale, sale.id).status == "PENDING"

    def test_finalize_unknown_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.finalize_sale(9999, "pix")
        with pytest.raises(NotFoundError):
            sales_service.finalize_sale_by_number("VND000", "pix")

    def test_cancel_restores_stock(self, db_session, make_product, customer):
        product = make_product(initial_stock="10")
        before = _counters(db_session, product.id)
        sale = sales_service.create_sale(customer.id, [(product.id, 5)])

        sale = sales_service.cancel_sale(sale.id)

        assert sale.status == "CANCELLED"
        assert sale.cancelled_at is not None
        assert _counters(db_session, product.id) == before
        compensating = (
            db_session.query(StockMovement)
            .filter_by(product_id=product.id, kind="IN", sale_id=sale.id)
            .one()
        )
        assert compensating.quantity == Decimal("5")

    def test_cancel_finalized_sale(self, db_session, make_product, customer):
        product = make_product(initial_stock="10")
        sale = sales_service.create_sale(customer.id, [(product.id, 5)])
        sales_service.finalize_sale(sale.id, "pix")

        with pytest.raises(InvalidStateTransitionError):
            sales_service.cancel_sale(sale.id)

        assert stock_service.get_current_stock(product.id) == Decimal("5")

    def test_cancel_twice(self, db_session, make_product, customer):
        product = make_product(initial_stock="10")
        sale = sales_service.create_sale(customer.id, [(product.id, 5)])
        sales_service.cancel_sale(sale.id)

        with pytest.raises(InvalidStateTransitionError):
            sales_service.cancel_sale(sale.id)
        with pytest.raises(InvalidStateTransitionError):
            sales_service.finalize_sale(sale.id, "pix")

        assert stock_service.get_current_stock(product.id) == Decimal("10")


# =============================================================================
# NUMBERING / QUERIES
# =============================================================================


class TestSaleNumbers:
    def test_format(self):
        assert re.fullmatch(r"VND\d{20}[A-Z0-9]{4}", sales_service.generate_sale_number())

    def test_unique_across_sales(self, db_session, make_product, customer):
        product = make_product(initial_stock="100")
        numbers = {
            sales_service.create_sale(customer.id, [(product.id, 1)]).sale_number
            for _ in range(20)
        }
        assert len(numbers) == 20

    def test_collision_gives_up_after_retries(self, db_session, make_product, customer, monkeypatch):
        product = make_product()
        taken = sales_service.create_sale(customer.id, [(product.id, 1)]).sale_number
        monkeypatch.setattr(sales_service, "generate_sale_number", lambda: taken)

        with pytest.raises(ConflictError):
            sales_service.create_sale(customer.id, [(product.id, 1)])
        assert stock_service.get_current_stock(product.id) == Decimal("99")


class TestQueries:
    def test_filters_and_order(self, db_session, make_product, customer, other_customer):
        product = make_product()
        first = sales_service.create_sale(customer.id, [(product.id, 1)])
        second = sales_service.create_sale(other_customer.id, [(product.id, 1)])
        third = sales_service.create_sale(customer.id, [(product.id, 1)])
        sales_service.finalize_sale(third.id, "pix")

        assert [s.id for s in sales_service.list_sales()] == [third.id, second.id, first.id]
        assert [s.id for s in sales_service.list_sales_by_customer(customer.id)] == [third.id, first.id]
        assert [s.id for s in sales_service.list_sales_by_status("finalized")] == [third.id]
        assert [s.id for s in sales_service.list_sales(status="PENDING", customer_id=customer.id)] == [first.id]

    def test_invalid_status(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.list_sales_by_status("PAID")

    def test_lookup(self, db_session, make_product, customer):
        product = make_product()
        sale = sales_service.create_sale(customer.id, [(product.id, 1)])
        assert sales_service.get_sale(sale.id).id == sale.id
        assert sales_service.get_sale_by_number(sale.sale_number).id == sale.id
        assert sales_service.get_sale(9999) is None
        assert sales_service.get_sale_by_number("nope") is None
