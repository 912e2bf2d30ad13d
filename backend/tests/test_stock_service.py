# Overview: Pytest coverage for the catalog and stock ledger services.

import pytest

from tillbook.errors import InsufficientStock, InvalidArgument, NotFound
from tillbook.models import LedgerEvent, Product, StockAdjustment
from tillbook.services import catalog_service, stock_service


def _make_product(stock=100, track_stock=True, threshold=0, sku=None):
    return catalog_service.create_product(
        name="Espresso Beans",
        price_cents=1800,
        sku=sku,
        track_stock=track_stock,
        stock_quantity=stock,
        low_stock_threshold=threshold,
        actor="tester",
    )


class TestAdjustStock:

    def test_modes_sequence(self, db_session):
        product = _make_product(stock=100)
        pid = product.id

        assert stock_service.adjust_stock(pid, 50, "set", actor="tester") == 50
        assert stock_service.adjust_stock(pid, 25, "add", actor="tester") == 75
        assert stock_service.adjust_stock(pid, 10, "remove", actor="tester") == 65
        assert stock_service.adjust_stock(pid, 0, "set", actor="tester") == 0

        assert db_session.get(Product, pid).stock_quantity == 0

    def test_remove_beyond_available_leaves_stock_unchanged(self, db_session):
        product = _make_product(stock=5)
        pid = product.id
        before_count = StockAdjustment.query.filter_by(product_id=pid).count()

        with pytest.raises(InsufficientStock) as exc_info:
            stock_service.adjust_stock(pid, 6, "remove", actor="tester")

        assert exc_info.value.details["items"][0]["product_id"] == pid
        assert db_session.get(Product, pid).stock_quantity == 5
        assert StockAdjustment.query.filter_by(product_id=pid).count() == before_count

    def test_each_adjustment_appends_one_record(self, db_session):
        product = _make_product(stock=10)
        pid = product.id
        stock_service.adjust_stock(pid, 3, "add", reason="Delivery", actor="tester")

        history = stock_service.get_stock_history(pid)
        # opening stock + the add
        assert len(history) == 2
        latest = history[0]
        assert latest.mode == "add"
        assert latest.quantity_delta == 3
        assert latest.quantity_before == 10
        assert latest.quantity_after == 13
        assert latest.reason == "Delivery"
        assert latest.actor == "tester"

    def test_untracked_product_is_logged_but_unchanged(self, db_session):
        product = _make_product(stock=0, track_stock=False)
        pid = product.id

        assert stock_service.adjust_stock(pid, 7, "add", actor="tester") == 0
        adjustments = StockAdjustment.query.filter_by(product_id=pid).all()
        assert len(adjustments) == 1
        assert adjustments[0].quantity_delta == 0

    @pytest.mark.parametrize(
        "quantity,mode",
        [(-1, "set"), (0, "add"), (0, "remove"), (-3, "remove"), (5, "count"), (2.5, "add")],
    )
    def test_invalid_arguments(self, db_session, quantity, mode):
        product = _make_product(stock=10)
        with pytest.raises(InvalidArgument):
            stock_service.adjust_stock(product.id, quantity, mode)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            stock_service.adjust_stock(99999, 1, "add")

    def test_adjustment_writes_ledger_event(self, db_session):
        product = _make_product(stock=10)
        stock_service.adjust_stock(product.id, 2, "remove", actor="auditor")

        event = LedgerEvent.query.filter_by(event_type="stock.adjusted").one()
        assert event.actor == "auditor"
        assert "delta=-2" in event.payload


class TestStockFold:

    def test_fold_matches_after_mixed_operations(self, db_session):
        product = _make_product(stock=40)
        pid = product.id
        stock_service.adjust_stock(pid, 12, "remove")
        stock_service.adjust_stock(pid, 30, "set")
        stock_service.adjust_stock(pid, 4, "add")

        report = stock_service.verify_stock_fold(pid)
        assert report["consistent"] is True
        assert report["stock_quantity"] == 34
        assert report["ledger_quantity"] == 34

    def test_opening_stock_recorded_as_set(self, db_session):
        product = _make_product(stock=12)
        opening = StockAdjustment.query.filter_by(product_id=product.id).one()
        assert opening.mode == "set"
        assert opening.quantity_after == 12
        assert opening.reason == "opening stock"


class TestPurchases:

    def test_purchase_restocks_and_updates_cost(self, db_session):
        product = _make_product(stock=5)
        adjustment = stock_service.record_purchase(
            product.id, 24, supplier="Harbour Roasters", unit_cost_cents=950, actor="manager",
        )
        assert adjustment.mode == "purchase"
        assert adjustment.quantity_delta == 24
        assert adjustment.reason == "purchase from Harbour Roasters"

        stored = db_session.get(Product, product.id)
        assert stored.stock_quantity == 29
        assert stored.cost_cents == 950
        assert stock_service.verify_stock_fold(product.id)["consistent"] is True
        assert LedgerEvent.query.filter_by(event_type="stock.purchased").count() == 1

    def test_list_purchases_filters_by_product(self, db_session):
        first = _make_product(sku="P-1")
        second = _make_product(sku="P-2")
        stock_service.record_purchase(first.id, 10)
        stock_service.record_purchase(second.id, 3)
        stock_service.adjust_stock(first.id, 1, "add")

        assert len(stock_service.list_purchases()) == 2
        assert [p.quantity for p in stock_service.list_purchases(product_id=first.id)] == [10]

    @pytest.mark.parametrize("quantity,unit_cost", [(0, None), (-3, None), (5, -1)])
    def test_invalid_purchase(self, db_session, quantity, unit_cost):
        product = _make_product()
        with pytest.raises(InvalidArgument):
            stock_service.record_purchase(product.id, quantity, unit_cost_cents=unit_cost)
        assert StockAdjustment.query.filter_by(mode="purchase").count() == 0

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            stock_service.record_purchase(5150, 1)


class TestCatalog:

    def test_duplicate_sku_rejected(self, db_session):
        _make_product(sku="bean-01")
        with pytest.raises(InvalidArgument):
            _make_product(sku="BEAN-01")

    def test_untracked_product_reads_zero_stock(self, db_session):
        product = _make_product(stock=50, track_stock=False)
        assert product.stock_quantity == 0
        assert product.to_dict()["stock_quantity"] is None

    def test_low_stock_levels(self, db_session):
        low = _make_product(stock=4, threshold=5, sku="LOW-1")
        critical = _make_product(stock=2, threshold=5, sku="CRIT-1")
        _make_product(stock=20, threshold=5, sku="OK-1")

        items = catalog_service.list_low_stock()
        levels = {item["product_id"]: item["level"] for item in items}
        assert levels == {low.id: "LOW", critical.id: "CRITICAL"}
        # Lowest stock first
        assert items[0]["product_id"] == critical.id
