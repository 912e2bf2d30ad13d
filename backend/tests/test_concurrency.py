# Overview: Threaded concurrency coverage for stock check-and-decrement.

"""
Concurrency tests against a file-backed SQLite database.

Two sales race for the same product; the write lock taken at the start of
each unit of work must serialize them so stock is never overdrawn.
"""

import os
import tempfile
import threading

import pytest

from tillbook import create_app
from tillbook.errors import InsufficientStock
from tillbook.extensions import db
from tillbook.models import Product, Transaction
from tillbook.services import catalog_service, payment_service, sales_service, stock_service


@pytest.fixture()
def file_app():
    tmpdir = tempfile.TemporaryDirectory()
    db_path = os.path.join(tmpdir.name, "concurrency.db")
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
    })

    with app.app_context():
        db.drop_all()
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()
    tmpdir.cleanup()


def _run_concurrently(app, worker, args_list):
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(len(args_list))

    def runner(*args):
        with app.app_context():
            try:
                barrier.wait()
                outcome = ("ok", worker(*args))
            except Exception as exc:
                outcome = ("error", exc)
            finally:
                db.session.remove()
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=runner, args=args) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_concurrent_sales_cannot_oversell(file_app):
    with file_app.app_context():
        product = catalog_service.create_product(
            name="Limited Pastry", price_cents=400, track_stock=True, stock_quantity=10,
        )
        product_id = product.id

    def sell(quantity):
        return sales_service.create_sale([{"product_id": product_id, "quantity": quantity}]).id

    results = _run_concurrently(file_app, sell, [(6,), (6,)])

    successes = [value for status, value in results if status == "ok"]
    failures = [value for status, value in results if status == "error"]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStock)

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 4
        assert Transaction.query.count() == 1
        assert stock_service.verify_stock_fold(product_id)["consistent"] is True


def test_concurrent_payments_keep_status_consistent(file_app):
    with file_app.app_context():
        sale = sales_service.create_sale([{"name": "Suite", "quantity": 1, "unit_price": "300.00"}])
        sale_id = sale.id

    def pay(amount_cents):
        return payment_service.add_payment(sale_id, amount_cents, "cash").id

    results = _run_concurrently(file_app, pay, [(10000,), (10000,), (10000,)])
    assert all(status == "ok" for status, _ in results)

    with file_app.app_context():
        report = payment_service.verify_payment_status(sale_id)
        assert report["consistent"] is True
        assert report["ledger_status"] == "paid"
        assert report["ledger_amount_paid_cents"] == 30000
