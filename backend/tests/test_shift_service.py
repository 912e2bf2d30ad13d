# Overview: Pytest coverage for shift open/close reconciliation and expenses.

from datetime import date

import pytest

from tillbook.errors import InvalidArgument, NotFound, ShiftAlreadyOpen
from tillbook.models import LedgerEvent
from tillbook.services import payment_service, sales_service, shift_service


def _paid_sale(amount_cents, method="cash"):
    sale = sales_service.create_sale([{"name": "Walk-in", "quantity": 1, "unit_price": amount_cents / 100}])
    payment_service.add_payment(sale.id, amount_cents, method)
    return sale


def _expense(amount_cents, method="cash"):
    return shift_service.record_expense(
        expense_date=date(2025, 8, 16),
        category="Supplies",
        amount_cents=amount_cents,
        description="Napkins",
        method=method,
        actor="manager",
    )


class TestShiftLifecycle:

    def test_close_reconciles_scenario(self, db_session):
        shift = shift_service.open_shift("alice", 10000)
        _paid_sale(5000)
        _expense(150)

        closed = shift_service.close_shift(shift.id, "bob", 14850)
        assert closed.status == "closed"
        assert closed.cash_payments_cents == 5000
        assert closed.cash_expenses_cents == 150
        assert closed.end_cash_expected_cents == 14850
        assert closed.difference_cents == 0
        assert closed.opened_by == "alice"
        assert closed.closed_by == "bob"
        assert closed.to_dict()["difference"] == 0.0

    def test_only_cash_inside_window_counts(self, db_session):
        _paid_sale(7000)  # before the shift opened
        shift = shift_service.open_shift("alice", 5000)
        _paid_sale(2000, method="card")
        _paid_sale(1000, method="cash")
        _expense(300, method="card")

        closed = shift_service.close_shift(shift.id, "alice", 5900)
        assert closed.end_cash_expected_cents == 6000
        assert closed.difference_cents == -100

    def test_variance_is_reported_not_corrected(self, db_session):
        shift = shift_service.open_shift("alice", 10000)
        closed = shift_service.close_shift(shift.id, "alice", 10250, notes="Found a tip jar")
        assert closed.end_cash_actual_cents == 10250
        assert closed.difference_cents == 250
        assert closed.notes == "Found a tip jar"

    def test_second_open_shift_rejected(self, db_session):
        first = shift_service.open_shift("alice", 0)
        with pytest.raises(ShiftAlreadyOpen) as exc_info:
            shift_service.open_shift("bob", 0)
        assert exc_info.value.details["shift_id"] == first.id

    def test_can_open_after_close(self, db_session):
        first = shift_service.open_shift("alice", 0)
        shift_service.close_shift(first.id, "alice", 0)
        second = shift_service.open_shift("bob", 2000)
        assert shift_service.get_current_shift().id == second.id

    def test_closed_shift_cannot_be_closed_again(self, db_session):
        shift = shift_service.open_shift("alice", 0)
        shift_service.close_shift(shift.id, "alice", 0)
        with pytest.raises(InvalidArgument):
            shift_service.close_shift(shift.id, "alice", 100)

    def test_unknown_shift(self, db_session):
        with pytest.raises(NotFound):
            shift_service.close_shift(8080, "alice", 0)

    def test_negative_start_cash(self, db_session):
        with pytest.raises(InvalidArgument):
            shift_service.open_shift("alice", -1)

    def test_history_and_ledger(self, db_session):
        first = shift_service.open_shift("alice", 0)
        shift_service.close_shift(first.id, "alice", 0)
        second = shift_service.open_shift("bob", 0)

        assert [s.id for s in shift_service.get_shift_history()] == [second.id, first.id]
        types = {e.event_type for e in LedgerEvent.query.filter_by(event_category="shifts").all()}
        assert types == {"shift.opened", "shift.closed"}


class TestExpenses:

    def test_record_and_filter(self, db_session):
        _expense(150)
        shift_service.record_expense(
            expense_date=date(2025, 8, 20), category="Laundry", amount_cents=900, method="Card",
        )

        all_rows = shift_service.list_expenses()
        assert len(all_rows) == 2
        assert all_rows[0].category == "Laundry"
        assert all_rows[0].method == "card"

        august_16 = shift_service.list_expenses(date_from=date(2025, 8, 16), date_to=date(2025, 8, 16))
        assert [e.amount_cents for e in august_16] == [150]
        assert len(shift_service.list_expenses(category="Laundry")) == 1

    @pytest.mark.parametrize("amount", [0, -50])
    def test_non_positive_amount(self, db_session, amount):
        with pytest.raises(InvalidArgument):
            _expense(amount)
