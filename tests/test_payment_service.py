"""
Tests for recording, amending and reversing payments.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from config import Settings
from conftest import ACTOR, TODAY
from models import HistoryAction, PaymentHistory, PaymentTransaction
from models.order import PaymentStatus
from services import audit_service
from services.activity_log import InMemoryActivitySink
from services.audit_service import PaymentSnapshot, change_of
from services.errors import NotFoundError, OverpaymentPolicyViolation, ValidationError
from services.payment_service import PaymentService


def count_rows(session_factory, model) -> int:
    with session_factory() as db:
        return db.query(model).count()


def active_sum(session_factory, order_id: int) -> Decimal:
    with session_factory() as db:
        payments = (
            db.query(PaymentTransaction)
            .filter(PaymentTransaction.order_id == order_id, PaymentTransaction.is_deleted.is_(False))
            .all()
        )
        return sum((p.amount_paid for p in payments), Decimal("0"))


class TestRecordPayment:
    """Recording a payment updates the order aggregate and writes history."""

    def test_record_updates_order(self, service, make_order, get_order, session_factory) -> None:
        order_id = make_order(total="1000.00")

        payment = service.record_payment(order_id, "400", "UPI", actor=ACTOR)

        assert payment.id is not None
        assert payment.amount_paid == Decimal("400.00")
        assert payment.payment_date == TODAY
        assert payment.status == PaymentStatus.PARTIAL
        order = get_order(order_id)
        assert order.amount_received == Decimal("400.00")
        assert order.balance_amount == Decimal("600.00")
        assert order.payment_status == PaymentStatus.PARTIAL
        assert count_rows(session_factory, PaymentHistory) == 1

    def test_record_emits_activity_after_commit(self, service, make_order, activity_sink) -> None:
        order_id = make_order(total="1000.00", customer_name="Asha Prints")

        service.record_payment(order_id, Decimal("250"), "Cash", actor=ACTOR)

        assert activity_sink.messages == [
            f"Received a payment of 250.00 for Order #{order_id} from Asha Prints."
        ]
        assert activity_sink.records[0].actor == ACTOR

    def test_failing_sink_does_not_undo_payment(self, session_factory, settings, make_order, get_order) -> None:
        class BrokenSink:
            def emit(self, message, actor):
                raise ConnectionError("activity feed unavailable")

        service = PaymentService(session_factory, settings, BrokenSink(), clock=lambda: TODAY)
        order_id = make_order(total="500.00")

        service.record_payment(order_id, "100", "Card", actor=ACTOR)

        assert get_order(order_id).amount_received == Decimal("100.00")

    @pytest.mark.parametrize("amount", ["0", "-5", "0.00", "abc", None])
    def test_invalid_amount(self, service, make_order, amount) -> None:
        order_id = make_order()
        with pytest.raises(ValidationError) as exc_info:
            service.record_payment(order_id, amount, "Cash", actor=ACTOR)
        assert exc_info.value.code == "INVALID_AMOUNT"
        assert exc_info.value.retryable is False

    def test_invalid_method(self, service, make_order) -> None:
        order_id = make_order()
        with pytest.raises(ValidationError) as exc_info:
            service.record_payment(order_id, "10", "Bitcoin", actor=ACTOR)
        assert exc_info.value.code == "INVALID_METHOD"

    def test_missing_actor(self, service, make_order) -> None:
        order_id = make_order()
        with pytest.raises(ValidationError) as exc_info:
            service.record_payment(order_id, "10", "Cash", actor="  ")
        assert exc_info.value.code == "MISSING_ACTOR"

    def test_unknown_order(self, service) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            service.record_payment(9999, "10", "Cash", actor=ACTOR)
        assert exc_info.value.code == "UNKNOWN_ORDER"

    def test_archived_order_is_not_found(self, service, make_order) -> None:
        order_id = make_order(is_deleted=True)
        with pytest.raises(NotFoundError):
            service.record_payment(order_id, "10", "Cash", actor=ACTOR)


class TestOverpayment:
    """Exact-balance boundary and both overpayment policies."""

    def test_exact_balance_is_paid(self, service, make_order, get_order) -> None:
        order_id = make_order(total="1000.00")

        payment = service.record_payment(order_id, "1000.00", "BankTransfer", actor=ACTOR)

        order = get_order(order_id)
        assert order.balance_amount == Decimal("0.00")
        assert order.payment_status == PaymentStatus.PAID
        assert payment.status == PaymentStatus.PAID

    def test_one_cent_over_is_rejected(self, service, make_order, get_order, session_factory) -> None:
        order_id = make_order(total="1000.00")
        service.record_payment(order_id, "1000.00", "Cash", actor=ACTOR)

        with pytest.raises(OverpaymentPolicyViolation) as exc_info:
            service.record_payment(order_id, "0.01", "Cash", actor=ACTOR)

        assert exc_info.value.code == "OVERPAYMENT_REJECTED"
        order = get_order(order_id)
        assert order.amount_received == Decimal("1000.00")
        assert order.balance_amount == Decimal("0.00")
        assert count_rows(session_factory, PaymentTransaction) == 1
        assert count_rows(session_factory, PaymentHistory) == 1

    def test_allow_policy_records_overpayment(self, session_factory, make_order, get_order) -> None:
        settings = Settings(overpayment_policy="allow", conflict_backoff_seconds=0)
        service = PaymentService(session_factory, settings, InMemoryActivitySink(), clock=lambda: TODAY)
        order_id = make_order(total="1000.00")

        service.record_payment(order_id, "1200.00", "Cash", actor=ACTOR)

        order = get_order(order_id)
        assert order.balance_amount == Decimal("-200.00")
        assert order.payment_status == PaymentStatus.PAID
        summary = service.order_summary(order_id)
        assert summary.overpaid is True
        assert summary.status == PaymentStatus.PAID

    def test_update_that_overpays_is_rejected(self, service, make_order, get_order) -> None:
        order_id = make_order(total="1000.00")
        service.record_payment(order_id, "600", "Cash", actor=ACTOR)
        second = service.record_payment(order_id, "300", "Cash", actor=ACTOR)

        with pytest.raises(OverpaymentPolicyViolation):
            service.update_payment(second.id, {"amount": "500"}, actor=ACTOR)

        order = get_order(order_id)
        assert order.amount_received == Decimal("900.00")
        assert service.get_payment(second.id).amount_paid == Decimal("300.00")
        assert len(service.get_payment_history(second.id)) == 1


class TestStatusScenarios:

    def test_overdue_order_becomes_paid(self, service, make_order, get_order) -> None:
        order_id = make_order(total="1000.00", due_date=TODAY - timedelta(days=5))
        assert service.order_summary(order_id).status == PaymentStatus.OVERDUE

        first = service.record_payment(order_id, "400", "Cash", actor=ACTOR)
        assert first.status == PaymentStatus.OVERDUE
        assert get_order(order_id).payment_status == PaymentStatus.OVERDUE

        second = service.record_payment(order_id, "600", "UPI", actor=ACTOR)
        assert second.status == PaymentStatus.PAID
        order = get_order(order_id)
        assert order.payment_status == PaymentStatus.PAID
        assert order.balance_amount == Decimal("0.00")

    def test_payment_due_date_drives_its_status(self, service, make_order) -> None:
        order_id = make_order(total="1000.00")

        payment = service.record_payment(
            order_id, "100", "Cash", actor=ACTOR, due_date=TODAY - timedelta(days=1)
        )

        assert payment.status == PaymentStatus.OVERDUE


class TestUpdatePayment:

    def test_amount_change_500_to_300(self, service, make_order, get_order) -> None:
        order_id = make_order(total="1000.00")
        payment = service.record_payment(order_id, "500", "Cash", actor=ACTOR)

        updated = service.update_payment(payment.id, {"amount": "300"}, actor="staff-2")

        assert updated.amount_paid == Decimal("300.00")
        order = get_order(order_id)
        assert order.amount_received == Decimal("300.00")
        assert order.balance_amount == Decimal("700.00")

        history = service.get_payment_history(payment.id)
        assert [h.action for h in history] == [HistoryAction.UPDATE, HistoryAction.CREATE]
        assert history[0].changed_by == "staff-2"
        diff = change_of(history[0]).diff()
        assert set(diff) == {"amount_paid"}
        assert diff["amount_paid"].old == Decimal("500.00")
        assert diff["amount_paid"].new == Decimal("300.00")

    def test_latest_history_matches_stored_payment(self, service, make_order) -> None:
        order_id = make_order(total="1000.00")
        payment = service.record_payment(order_id, "500", "Cash", actor=ACTOR)
        service.update_payment(
            payment.id,
            {"amount": "450", "notes": "corrected", "payment_method": "UPI"},
            actor=ACTOR,
        )

        stored = PaymentSnapshot.of(service.get_payment(payment.id)).to_json()
        latest = service.get_payment_history(payment.id)[0]

        assert latest.new_values == stored

    def test_non_amount_change_leaves_totals(self, service, make_order, get_order) -> None:
        order_id = make_order(total="1000.00")
        payment = service.record_payment(order_id, "500", "Cash", actor=ACTOR)

        service.update_payment(payment.id, {"notes": "paid at counter"}, actor=ACTOR)

        order = get_order(order_id)
        assert order.amount_received == Decimal("500.00")
        diff = change_of(service.get_payment_history(payment.id)[0]).diff()
        assert set(diff) == {"notes"}
        assert diff["notes"].new == "paid at counter"

    def test_unknown_field(self, service, make_order) -> None:
        payment = service.record_payment(make_order(), "10", "Cash", actor=ACTOR)
        with pytest.raises(ValidationError) as exc_info:
            service.update_payment(payment.id, {"order_id": 2}, actor=ACTOR)
        assert exc_info.value.code == "INVALID_FIELD"

    def test_no_fields(self, service, make_order) -> None:
        payment = service.record_payment(make_order(), "10", "Cash", actor=ACTOR)
        with pytest.raises(ValidationError) as exc_info:
            service.update_payment(payment.id, {}, actor=ACTOR)
        assert exc_info.value.code == "NO_FIELDS"

    def test_unknown_payment(self, service) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            service.update_payment(4242, {"notes": "x"}, actor=ACTOR)
        assert exc_info.value.code == "UNKNOWN_PAYMENT"


class TestDeletePayment:

    def test_delete_reverses_amount(self, service, make_order, get_order) -> None:
        order_id = make_order(total="1000.00")
        payment = service.record_payment(order_id, "400", "Cash", actor=ACTOR)

        deleted = service.delete_payment(payment.id, actor="staff-9")

        assert deleted.is_deleted is True
        order = get_order(order_id)
        assert order.amount_received == Decimal("0.00")
        assert order.balance_amount == Decimal("1000.00")
        assert order.payment_status == PaymentStatus.DUE

        with pytest.raises(NotFoundError):
            service.get_payment(payment.id)
        archived = service.get_payment(payment.id, include_deleted=True)
        assert archived.deleted_by == "staff-9"

        history = service.get_payment_history(payment.id)
        assert [h.action for h in history] == [HistoryAction.DELETE, HistoryAction.CREATE]
        assert history[0].new_values is None
        assert history[0].old_values["amount_paid"] == "400.00"

    def test_delete_twice(self, service, make_order) -> None:
        payment = service.record_payment(make_order(), "10", "Cash", actor=ACTOR)
        service.delete_payment(payment.id, actor=ACTOR)
        with pytest.raises(NotFoundError) as exc_info:
            service.delete_payment(payment.id, actor=ACTOR)
        assert exc_info.value.code == "UNKNOWN_PAYMENT"

    def test_history_of_unknown_payment(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.get_payment_history(777)


class TestLedgerInvariant:

    def test_received_equals_sum_of_active_payments(self, service, make_order, get_order, session_factory) -> None:
        order_id = make_order(total="1000.00")
        first = service.record_payment(order_id, "300", "Cash", actor=ACTOR)
        second = service.record_payment(order_id, "200", "UPI", actor=ACTOR)
        service.record_payment(order_id, "150", "Card", actor=ACTOR)
        service.update_payment(first.id, {"amount": "100"}, actor=ACTOR)
        service.delete_payment(second.id, actor=ACTOR)

        order = get_order(order_id)
        ledger = active_sum(session_factory, order_id)
        assert ledger == Decimal("250.00")
        assert order.amount_received == ledger
        assert order.balance_amount == order.total_amount - ledger
        assert count_rows(session_factory, PaymentHistory) == 5
        assert service.reconcile_order(order_id).consistent is True

    def test_list_order_payments(self, service, make_order) -> None:
        order_id = make_order(total="1000.00")
        first = service.record_payment(order_id, "100", "Cash", actor=ACTOR, payment_date=TODAY - timedelta(days=2))
        second = service.record_payment(order_id, "200", "Cash", actor=ACTOR)
        service.delete_payment(first.id, actor=ACTOR)

        assert [p.id for p in service.list_order_payments(order_id)] == [second.id]
        assert [p.id for p in service.list_order_payments(order_id, include_deleted=True)] == [second.id, first.id]


class TestAtomicity:

    def test_history_failure_rolls_back_payment(self, service, make_order, get_order, session_factory, monkeypatch) -> None:
        order_id = make_order(total="1000.00")

        def broken_history(*args, **kwargs):
            raise RuntimeError("history store unavailable")

        monkeypatch.setattr(audit_service, "record_history", broken_history)

        with pytest.raises(RuntimeError):
            service.record_payment(order_id, "400", "Cash", actor=ACTOR)

        order = get_order(order_id)
        assert order.amount_received == Decimal("0.00")
        assert order.balance_amount == Decimal("1000.00")
        assert count_rows(session_factory, PaymentTransaction) == 0
        assert count_rows(session_factory, PaymentHistory) == 0

    def test_history_failure_rolls_back_delete(self, service, make_order, get_order, monkeypatch) -> None:
        order_id = make_order(total="1000.00")
        payment = service.record_payment(order_id, "400", "Cash", actor=ACTOR)

        def broken_history(*args, **kwargs):
            raise RuntimeError("history store unavailable")

        monkeypatch.setattr(audit_service, "record_history", broken_history)

        with pytest.raises(RuntimeError):
            service.delete_payment(payment.id, actor=ACTOR)

        assert get_order(order_id).amount_received == Decimal("400.00")
        assert service.get_payment(payment.id).is_deleted is False
