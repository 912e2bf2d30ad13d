# Overview: Pytest coverage for the payment ledger and derived payment status.

import pytest

from tillbook.errors import InvalidArgument, NotFound
from tillbook.models import Payment, Transaction
from tillbook.services import payment_service, return_service, sales_service


def _sale_of(total_cents):
    return sales_service.create_sale(
        [{"name": "Banquet package", "quantity": 1, "unit_price": total_cents / 100}],
        actor="cashier",
    )


class TestDerivePaymentStatus:

    @pytest.mark.parametrize(
        "total,paid,expected",
        [
            (1000, 0, "unpaid"),
            (1000, 1, "partial"),
            (1000, 999, "partial"),
            (1000, 1000, "paid"),
            (1000, 1500, "paid"),
            (0, 0, "unpaid"),
        ],
    )
    def test_status(self, total, paid, expected):
        assert payment_service.derive_payment_status(total, paid) == expected


class TestAddPayment:

    def test_partial_payments_scenario(self, db_session):
        sale = _sale_of(99999)
        assert sale.total_cents == 99999

        payment_service.add_payment(sale.id, 40000, "cash", actor="cashier")
        summary = payment_service.get_payment_summary(sale.id)
        assert summary["payment_status"] == "partial"
        assert summary["amount_due_cents"] == 59999

        payment_service.add_payment(sale.id, 30000, "card", actor="cashier")
        summary = payment_service.get_payment_summary(sale.id)
        assert summary["payment_status"] == "partial"
        assert summary["amount_due_cents"] == 29999

        payment_service.add_payment(sale.id, 29999, "cash", actor="cashier")
        summary = payment_service.get_payment_summary(sale.id)
        assert summary["payment_status"] == "paid"
        assert summary["amount_due_cents"] == 0
        assert summary["amount_due"] == 0.0

        transaction = db_session.get(Transaction, sale.id)
        assert transaction.payment_status == "paid"
        assert transaction.amount_paid_cents == 99999

    def test_paid_plus_due_equals_total(self, db_session):
        sale = _sale_of(5000)
        for amount in (1200, 800, 700):
            payment_service.add_payment(sale.id, amount, "cash")
            summary = payment_service.get_payment_summary(sale.id)
            assert summary["amount_paid_cents"] + summary["amount_due_cents"] == summary["total_cents"]
            assert payment_service.verify_payment_status(sale.id)["consistent"] is True

    def test_overpayment_recorded_as_is(self, db_session):
        sale = _sale_of(1000)
        payment = payment_service.add_payment(sale.id, 2000, "cash")

        assert payment.amount_cents == 2000
        summary = payment_service.get_payment_summary(sale.id)
        assert summary["payment_status"] == "paid"
        assert summary["amount_paid_cents"] == 2000
        assert summary["amount_due_cents"] == 0

    def test_method_is_normalized(self, db_session):
        sale = _sale_of(1000)
        payment = payment_service.add_payment(sale.id, 500, "  CASH ")
        assert payment.method == "cash"

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount(self, db_session, amount):
        sale = _sale_of(1000)
        with pytest.raises(InvalidArgument):
            payment_service.add_payment(sale.id, amount, "cash")
        assert Payment.query.count() == 0

    def test_empty_method(self, db_session):
        sale = _sale_of(1000)
        with pytest.raises(InvalidArgument):
            payment_service.add_payment(sale.id, 100, " ")

    def test_unknown_transaction(self, db_session):
        with pytest.raises(NotFound):
            payment_service.add_payment(9999, 100, "cash")

    def test_payment_against_return_rejected(self, db_session):
        credit = return_service.create_return([{"name": "Voucher", "quantity": 1, "unit_price": 10}])
        with pytest.raises(InvalidArgument):
            payment_service.add_payment(credit.id, 100, "cash")


class TestPaymentFold:

    def test_summary_ignores_stale_cache(self, db_session):
        sale = _sale_of(1000)
        payment_service.add_payment(sale.id, 400, "cash")

        # Corrupt the cache columns directly
        transaction = db_session.get(Transaction, sale.id)
        transaction.payment_status = "paid"
        transaction.amount_paid_cents = 1000
        db_session.commit()

        summary = payment_service.get_payment_summary(sale.id)
        assert summary["payment_status"] == "partial"
        assert summary["amount_paid_cents"] == 400

        report = payment_service.verify_payment_status(sale.id)
        assert report["consistent"] is False
        assert report["ledger_status"] == "partial"

        details = sales_service.get_transaction_details(sale.id)
        assert details["payment_status"] == "partial"
        assert details["amount_due_cents"] == 600
