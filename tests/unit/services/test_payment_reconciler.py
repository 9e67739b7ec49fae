"""Unit tests for payment reconciliation."""

import asyncio
import re
from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from policy_lifecycle.core.errors import OrderNotFound, TransientError
from policy_lifecycle.core.result_types import Err, Ok
from policy_lifecycle.models.order import OrderStatus, PaymentState
from policy_lifecycle.models.payment import GatewayCallback
from policy_lifecycle.services.order_service import OrderService
from policy_lifecycle.services.package_catalog import PackageCatalog
from policy_lifecycle.services.payment_reconciler import PaymentReconciler, add_years
from policy_lifecycle.services.quotation_service import QuotationService

from fakes import FakeDatabase, RecordingNotifier

POLICY_NUMBER = re.compile(r"^[A-Z]{2}[A-Z]{2}[A-Z]{2}[01][0-9]{2}[0-9]{10}$")


@pytest.fixture
async def awaiting_order(quotation_service, order_service, quotation_data, owner):
    quotation = (await quotation_service.submit(quotation_data, [], owner)).unwrap()
    order = (await order_service.create_order(quotation.id, owner)).unwrap()
    return (await order_service.assign_gateway_token(order.id, owner)).unwrap()


def callback_for(order, status="Complete", **overrides):
    values = {
        "correlation_token": order.gateway_token,
        "gateway_status": status,
        "gateway_response_payload": "https://pay.example/return?payment_ref_id=PR-77",
        "gateway_name": "bkash",
    }
    values.update(overrides)
    return GatewayCallback(**values)


class TestSuccessfulPayment:
    """Test policy issuance on a completed payment."""

    async def test_issues_policy_and_notifies_once(
        self, reconciler, awaiting_order, notifier, owner
    ):
        result = await reconciler.reconcile(callback_for(awaiting_order), brand="Acme")

        assert isinstance(result, Ok)
        outcome = result.unwrap()
        order = outcome.order
        assert outcome.policy_issued
        assert outcome.notification_queued
        assert outcome.payment_ref_id == "PR-77"
        assert outcome.summary is None
        assert order.status == OrderStatus.COMPLETED
        assert order.payment_state == PaymentState.SETTLED
        assert POLICY_NUMBER.fullmatch(order.policy_number)
        assert order.policy_start_date == date.today()
        assert order.policy_end_date == add_years(date.today(), 1)
        assert order.gateway_status == "Complete"
        assert order.gateway_name == "bkash"
        assert [(u, o.policy_number, b) for u, o, b in notifier.policy_issued] == [
            (owner.user_id, order.policy_number, "Acme")
        ]

    async def test_replayed_callback_is_a_no_op(
        self, reconciler, awaiting_order, notifier, fake_db
    ):
        callback = callback_for(awaiting_order)

        first = (await reconciler.reconcile(callback)).unwrap()
        second = (await reconciler.reconcile(callback)).unwrap()

        assert first.policy_issued
        assert not second.policy_issued
        assert not second.notification_queued
        assert second.order.policy_number == first.order.policy_number
        assert len(notifier.policy_issued) == 1
        issued = [row for row in fake_db.rows("orders") if row["policy_number"]]
        assert len(issued) == 1

    async def test_concurrent_deliveries_issue_one_policy(
        self, reconciler, awaiting_order, notifier
    ):
        callback = callback_for(awaiting_order)

        results = await asyncio.gather(*(reconciler.reconcile(callback) for _ in range(5)))

        outcomes = [result.unwrap() for result in results]
        assert sum(outcome.policy_issued for outcome in outcomes) == 1
        assert len({outcome.order.policy_number for outcome in outcomes}) == 1
        assert len(notifier.policy_issued) == 1

    async def test_default_brand_comes_from_settings(
        self, reconciler, awaiting_order, notifier
    ):
        await reconciler.reconcile(callback_for(awaiting_order))

        assert notifier.policy_issued[0][2] == "Instasure"

    async def test_policy_number_collision_regenerates(
        self, reconciler, awaiting_order, fake_db
    ):
        taken = "INPRTI0251234567890"
        other_id = uuid4()
        fake_db.tables["orders"][other_id] = {
            **fake_db.tables["orders"][awaiting_order.id],
            "id": other_id,
            "reference_code": "TIO-20250101-OTHER1",
            "quotation_id": uuid4(),
            "gateway_token": None,
            "policy_number": taken,
        }
        numbers = iter([taken, "INPRTI0259876543210"])
        reconciler._ids.policy_number = lambda package: next(numbers)

        outcome = (await reconciler.reconcile(callback_for(awaiting_order))).unwrap()

        assert outcome.order.policy_number == "INPRTI0259876543210"

    async def test_machine_caller_gets_summary(
        self, reconciler, awaiting_order, owner
    ):
        callback = callback_for(awaiting_order, is_machine_caller=True)

        outcome = (await reconciler.reconcile(callback)).unwrap()

        summary = outcome.summary
        assert summary.user_id == owner.user_id
        assert summary.payment_ref_id == "PR-77"
        assert summary.gateway_status == "Complete"
        assert outcome.order.policy_number in summary.message


class TestOtherStatuses:
    """Test non-success callbacks."""

    async def test_failure_rejects_without_policy(
        self, reconciler, awaiting_order, notifier
    ):
        outcome = (
            await reconciler.reconcile(callback_for(awaiting_order, "Failed"))
        ).unwrap()

        assert outcome.order.status == OrderStatus.REJECTED
        assert outcome.order.payment_state == PaymentState.DECLINED
        assert outcome.order.policy_number is None
        assert not outcome.policy_issued
        assert notifier.policy_issued == []

    async def test_unrecognised_status_leaves_order_pending(
        self, reconciler, awaiting_order
    ):
        outcome = (
            await reconciler.reconcile(callback_for(awaiting_order, "Processing"))
        ).unwrap()

        assert outcome.order.status == OrderStatus.PENDING
        assert outcome.order.gateway_status == "Processing"

    async def test_success_after_failure_still_issues(
        self, reconciler, awaiting_order
    ):
        await reconciler.reconcile(callback_for(awaiting_order, "Failed"))

        outcome = (await reconciler.reconcile(callback_for(awaiting_order))).unwrap()

        assert outcome.policy_issued
        assert outcome.order.status == OrderStatus.COMPLETED

    async def test_settled_order_is_never_demoted(
        self, reconciler, awaiting_order, notifier
    ):
        issued = (await reconciler.reconcile(callback_for(awaiting_order))).unwrap()

        late = (
            await reconciler.reconcile(callback_for(awaiting_order, "Cancelled"))
        ).unwrap()

        assert late.order.status == OrderStatus.COMPLETED
        assert late.order.policy_number == issued.order.policy_number
        assert late.order.gateway_status == "Cancelled"
        assert len(notifier.policy_issued) == 1


class TestFailures:
    """Test error reporting."""

    async def test_unknown_token(self, reconciler, fake_db):
        callback = GatewayCallback(correlation_token="missing", gateway_status="Complete")

        result = await reconciler.reconcile(callback)

        assert isinstance(result, Err)
        assert isinstance(result.error, OrderNotFound)
        assert not any(s.startswith("UPDATE") for s in fake_db.statements)

    async def test_persistence_timeout_is_transient(
        self, reconciler, awaiting_order, fake_db
    ):
        fake_db.fail_on = "SET policy_number"

        result = await reconciler.reconcile(callback_for(awaiting_order))

        assert isinstance(result.error, TransientError)
        stored = fake_db.order(awaiting_order.id)
        assert stored.gateway_status is None
        assert stored.policy_number is None

    async def test_notification_failure_does_not_fail_reconciliation(
        self, fake_db, catalog, awaiting_order
    ):
        reconciler = PaymentReconciler(fake_db, catalog, RecordingNotifier(fail=True))

        outcome = (await reconciler.reconcile(callback_for(awaiting_order))).unwrap()

        assert outcome.policy_issued
        assert not outcome.notification_queued
        assert fake_db.order(awaiting_order.id).policy_number is not None

    async def test_notifier_is_called_after_commit(
        self, fake_db, catalog, awaiting_order
    ):
        notifier = AsyncMock()

        async def check_committed(user_id, order, brand):
            assert fake_db.order(order.id).policy_number == order.policy_number

        notifier.notify_policy_issued.side_effect = check_committed
        reconciler = PaymentReconciler(fake_db, catalog, notifier)

        outcome = (await reconciler.reconcile(callback_for(awaiting_order))).unwrap()

        assert outcome.notification_queued
        notifier.notify_policy_issued.assert_awaited_once()


@pytest.mark.parametrize(
    ("start", "expected"),
    [
        (date(2025, 1, 14), date(2026, 1, 14)),
        (date(2024, 2, 29), date(2025, 2, 28)),
    ],
)
def test_add_years(start, expected):
    assert add_years(start, 1) == expected


async def test_issuance_needs_one_connection(
    package, mock_cache, document_store, notifier, quotation_data, owner
):
    db = FakeDatabase(pool_size=1)
    db.add_package(package)
    catalog = PackageCatalog(db, mock_cache)
    quotations = QuotationService(db, catalog, document_store)
    orders = OrderService(db, catalog, quotations, document_store)
    reconciler = PaymentReconciler(db, catalog, notifier)
    quotation = (await quotations.submit(quotation_data, [], owner)).unwrap()
    order = (await orders.create_order(quotation.id, owner)).unwrap()
    order = (await orders.assign_gateway_token(order.id, owner)).unwrap()

    result = await asyncio.wait_for(reconciler.reconcile(callback_for(order)), 1)

    assert result.unwrap().policy_issued
    assert len(notifier.policy_issued) == 1
