# Overview: Pytest coverage for sale creation and transaction reads.

import pytest

from tillbook.errors import AlreadyCheckedOut, EmptyTransaction, InsufficientStock, InvalidArgument, NotFound
from tillbook.models import LedgerEvent, Product, StockAdjustment, Transaction, TransactionLine
from tillbook.schemas import LineItemInput
from tillbook.services import catalog_service, checkout_service, sales_service, stock_service


class TestCreateSale:

    def test_sale_decrements_tracked_stock(self, db_session, tracked_product, untracked_product):
        sale = sales_service.create_sale(
            [
                {"product_id": tracked_product.id, "quantity": 3},
                {"product_id": untracked_product.id, "quantity": 2},
            ],
            actor="cashier",
        )

        assert sale.kind == "sale"
        assert sale.payment_status == "unpaid"
        assert sale.subtotal_cents == 3 * 250 + 2 * 1250
        assert sale.total_cents == sale.subtotal_cents
        assert db_session.get(Product, tracked_product.id).stock_quantity == 7
        assert db_session.get(Product, untracked_product.id).stock_quantity == 0

        adjustment = StockAdjustment.query.filter_by(transaction_id=sale.id).one()
        assert adjustment.mode == "sale"
        assert adjustment.quantity_delta == -3
        assert adjustment.reason == f"sale #{sale.id}"

    def test_lines_keep_insertion_order_and_frozen_prices(self, db_session, tracked_product):
        sale = sales_service.create_sale(
            [
                LineItemInput(quantity=1, name="Late checkout fee", unit_price_cents=2000),
                LineItemInput(quantity=2, product_id=tracked_product.id),
            ],
        )
        sale_id = sale.id

        # Later catalog edit must not change history
        product = db_session.get(Product, tracked_product.id)
        product.price_cents = 999
        product.name = "Renamed"
        db_session.commit()

        lines = TransactionLine.query.filter_by(transaction_id=sale_id).order_by(TransactionLine.position).all()
        assert [line.item_name for line in lines] == ["Late checkout fee", "Bottled Water"]
        assert lines[1].unit_price_cents == 250
        assert lines[1].line_total_cents == 500

    def test_totals_with_discount_and_tax(self, db_session, untracked_product):
        sale = sales_service.create_sale(
            [{"product_id": untracked_product.id, "quantity": 4}],
            discount_cents=500,
            tax_cents=225,
        )
        assert sale.subtotal_cents == 5000
        assert sale.total_cents == 5000 - 500 + 225

    def test_empty_items(self, db_session):
        with pytest.raises(EmptyTransaction):
            sales_service.create_sale([])

    def test_negative_total_rejected(self, db_session, untracked_product):
        with pytest.raises(InvalidArgument):
            sales_service.create_sale(
                [{"product_id": untracked_product.id, "quantity": 1}],
                discount_cents=5000,
            )
        assert Transaction.query.count() == 0

    def test_negative_tax_rejected(self, db_session, untracked_product):
        with pytest.raises(InvalidArgument):
            sales_service.create_sale([{"product_id": untracked_product.id, "quantity": 1}], tax_cents=-1)

    def test_line_total_above_ceiling_rejected(self, db_session):
        with pytest.raises(InvalidArgument):
            sales_service.create_sale([{"name": "Banquet", "quantity": 1000, "unit_price": "99999.99"}])
        assert Transaction.query.count() == 0

    def test_subtotal_above_ceiling_rejected(self, db_session):
        line = {"name": "Hall hire", "quantity": 1, "unit_price": "6000000.00"}
        with pytest.raises(InvalidArgument):
            sales_service.create_sale([line, dict(line)])
        assert Transaction.query.count() == 0

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            sales_service.create_sale([{"product_id": 424242, "quantity": 1}])

    def test_ad_hoc_item_requires_price(self, db_session):
        with pytest.raises(InvalidArgument):
            sales_service.create_sale([{"name": "Mystery", "quantity": 1}])


class TestSaleAtomicity:

    def test_insufficient_stock_writes_nothing(self, db_session, tracked_product, untracked_product):
        adjustments_before = StockAdjustment.query.count()
        events_before = LedgerEvent.query.count()

        with pytest.raises(InsufficientStock) as exc_info:
            sales_service.create_sale([
                {"product_id": untracked_product.id, "quantity": 1},
                {"product_id": tracked_product.id, "quantity": 11},
            ])

        assert exc_info.value.details["items"][0]["product_id"] == tracked_product.id
        assert Transaction.query.count() == 0
        assert TransactionLine.query.count() == 0
        assert StockAdjustment.query.count() == adjustments_before
        assert LedgerEvent.query.count() == events_before
        assert db_session.get(Product, tracked_product.id).stock_quantity == 10

    def test_demand_is_aggregated_per_product(self, db_session, tracked_product):
        with pytest.raises(InsufficientStock):
            sales_service.create_sale([
                {"product_id": tracked_product.id, "quantity": 6},
                {"product_id": tracked_product.id, "quantity": 5},
            ])
        assert db_session.get(Product, tracked_product.id).stock_quantity == 10

    def test_all_short_products_are_reported(self, db_session, tracked_product):
        other = catalog_service.create_product(
            name="Sparkling Water", price_cents=300, track_stock=True, stock_quantity=1,
        )
        with pytest.raises(InsufficientStock) as exc_info:
            sales_service.create_sale([
                {"product_id": tracked_product.id, "quantity": 20},
                {"product_id": other.id, "quantity": 2},
            ])
        reported = {item["product_id"] for item in exc_info.value.details["items"]}
        assert reported == {tracked_product.id, other.id}

    def test_stock_never_negative_over_sequence(self, db_session, tracked_product):
        pid = tracked_product.id
        sales_service.create_sale([{"product_id": pid, "quantity": 4}])
        sales_service.create_sale([{"product_id": pid, "quantity": 6}])
        with pytest.raises(InsufficientStock):
            sales_service.create_sale([{"product_id": pid, "quantity": 1}])

        assert db_session.get(Product, pid).stock_quantity == 0
        assert stock_service.verify_stock_fold(pid)["consistent"] is True


class TestGuestSales:

    def test_sale_for_checked_out_guest_rejected(self, db_session, untracked_product):
        guest = checkout_service.check_in_guest(name="Guest", check_in="2025-08-16", daily_rate_cents=10000)
        checkout_service.checkout(guest.id, "2025-08-17")

        with pytest.raises(AlreadyCheckedOut):
            sales_service.create_sale([{"product_id": untracked_product.id, "quantity": 1}], guest_id=guest.id)

    def test_unknown_guest(self, db_session, untracked_product):
        with pytest.raises(NotFound):
            sales_service.create_sale([{"product_id": untracked_product.id, "quantity": 1}], guest_id=777)


class TestTransactionReads:

    def test_details_include_items_and_fresh_payment_fold(self, db_session, untracked_product):
        sale = sales_service.create_sale([{"product_id": untracked_product.id, "quantity": 2}])
        details = sales_service.get_transaction_details(sale.id)

        assert details["total_cents"] == 2500
        assert details["amount_paid_cents"] == 0
        assert details["amount_due_cents"] == 2500
        assert details["payment_status"] == "unpaid"
        assert [item["item_name"] for item in details["items"]] == ["Club Sandwich"]
        assert details["payments"] == []

    def test_list_transactions_newest_first(self, db_session, untracked_product):
        first = sales_service.create_sale([{"product_id": untracked_product.id, "quantity": 1}])
        second = sales_service.create_sale([{"product_id": untracked_product.id, "quantity": 1}])

        rows = sales_service.list_transactions(kind="sale")
        assert [t.id for t in rows] == [second.id, first.id]

    def test_unknown_transaction(self, db_session):
        with pytest.raises(NotFound):
            sales_service.get_transaction_details(31337)
