# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Payment gateway callback reconciliation.

Each callback is applied to the order whose gateway token it carries. The
order row is locked for the whole callback, the policy number is written
with ``WHERE policy_number IS NULL`` and the column is unique, so a callback
delivered twice (or twice at once) issues at most one policy and queues at
most one notification.

Status rules:

- ``Complete``: order completed, policy issued unless it already has one
- a recognised failure status: order rejected
- anything else: order left pending

An order that already holds a policy stays completed whatever later
callbacks report.
"""

from collections.abc import Callable
from datetime import date
from typing import Any

from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.database import TRANSIENT_DB_ERRORS, Database
from ..core.errors import LifecycleError, OrderNotFound
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.order import Order, OrderStatus
from ..models.payment import (
    GatewayCallback,
    PaymentSummary,
    ReconciliationOutcome,
    extract_payment_ref_id,
)
from .collaborators import Notifier
from .order_service import ORDER_COLUMNS, row_to_order
from .package_catalog import PackageCatalog
from .performance_monitor import performance_monitor
from .reference_ids import ReferenceIdGenerator
from .transaction_helpers import AbortTransaction, transient_error, with_unique_value

logger = get_logger(__name__)

POLICY_NUMBER_CONSTRAINT = "uq_orders_policy_number"


@beartype
def add_years(start: date, years: int) -> date:
    """Same calendar day ``years`` later; 29 February falls back to the 28th."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


class PaymentReconciler:
    """Applies payment gateway callbacks to orders and issues policies."""

    def __init__(
        self,
        db: Database,
        catalog: PackageCatalog,
        notifier: Notifier,
        ids: ReferenceIdGenerator | None = None,
        settings: Settings | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize reconciler with dependencies."""
        self._db = db
        self._catalog = catalog
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._ids = ids or ReferenceIdGenerator(self._settings)
        self._today = today

    @performance_monitor("reconcile_payment", max_duration_ms=1000)
    @beartype
    async def reconcile(
        self, callback: GatewayCallback, brand: str | None = None
    ) -> Result[ReconciliationOutcome, LifecycleError]:
        """Apply one gateway callback.

        Args:
            callback: Callback as delivered by the gateway
            brand: Brand used in the policy-issued notification

        Returns:
            Result containing the updated order and what this callback did,
            or ``OrderNotFound`` when no order carries the token
        """
        try:
            async with self._db.transaction() as conn:
                row = await conn.fetchrow(
                    f"""
                    SELECT {ORDER_COLUMNS} FROM orders
                    WHERE gateway_token = $1
                    FOR UPDATE
                    """,
                    callback.correlation_token,
                )
                if not row:
                    logger.warning(
                        "Gateway callback for unknown token from %s",
                        callback.gateway_name or "unknown gateway",
                    )
                    return Err(
                        OrderNotFound("No order matches the gateway correlation token")
                    )

                order = row_to_order(row)
                status = self._next_status(order, callback)

                row = await conn.fetchrow(
                    f"""
                    UPDATE orders
                    SET gateway_status = $2, gateway_response = $3,
                        gateway_name = $4, status = $5, updated_at = NOW()
                    WHERE id = $1
                    RETURNING {ORDER_COLUMNS}
                    """,
                    order.id,
                    callback.gateway_status,
                    callback.gateway_response_payload,
                    callback.gateway_name,
                    status.value,
                )

                issued_row = None
                if order.policy_number is None and callback.is_success:
                    issued_row = await self._issue_policy(conn, order)
                elif order.has_policy and callback.is_success:
                    logger.info(
                        "Replayed callback for order %s ignored; policy %s already issued",
                        order.reference_code,
                        order.policy_number,
                    )
        except AbortTransaction as abort:
            return Err(abort.error)
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("reconcile_payment", exc))

        updated = row_to_order(issued_row if issued_row is not None else row)
        policy_issued = issued_row is not None

        notification_queued = False
        if policy_issued:
            logger.info(
                "Policy %s issued for order %s",
                updated.policy_number,
                updated.reference_code,
            )
            notification_queued = await self._notify_policy_issued(updated, brand)
        elif status == OrderStatus.REJECTED:
            logger.info(
                "Payment declined for order %s (%s)",
                updated.reference_code,
                callback.gateway_status,
            )

        payment_ref_id = extract_payment_ref_id(callback.gateway_response_payload)
        summary = None
        if callback.is_machine_caller:
            summary = PaymentSummary(
                user_id=updated.owner_id,
                order=updated,
                gateway_name=callback.gateway_name,
                gateway_response=callback.gateway_response_payload,
                gateway_status=callback.gateway_status,
                payment_ref_id=payment_ref_id,
                message=self._summary_message(updated, callback, policy_issued),
            )

        return Ok(
            ReconciliationOutcome(
                order=updated,
                policy_issued=policy_issued,
                notification_queued=notification_queued,
                payment_ref_id=payment_ref_id,
                summary=summary,
            )
        )

    @staticmethod
    def _next_status(order: Order, callback: GatewayCallback) -> OrderStatus:
        if order.has_policy or callback.is_success:
            return OrderStatus.COMPLETED
        if callback.is_failure:
            return OrderStatus.REJECTED
        return OrderStatus.PENDING

    async def _issue_policy(self, conn: Any, order: Order) -> Any:
        """Assign a policy number and term; returns the updated row or None."""
        package_result = await self._catalog.get(order.package_id, conn)
        if isinstance(package_result, Err):
            raise AbortTransaction(package_result.error)
        package = package_result.unwrap()

        start = self._today()
        end = add_years(start, self._settings.policy_term_years)

        async def issue(conn: Any, policy_number: str) -> Any:
            return await conn.fetchrow(
                f"""
                UPDATE orders
                SET policy_number = $2, policy_start_date = $3,
                    policy_end_date = $4, updated_at = NOW()
                WHERE id = $1 AND policy_number IS NULL
                RETURNING {ORDER_COLUMNS}
                """,
                order.id,
                policy_number,
                start,
                end,
            )

        issued = await with_unique_value(
            conn,
            lambda: self._ids.policy_number(package),
            issue,
            constraint=POLICY_NUMBER_CONSTRAINT,
            max_attempts=self._settings.reference_max_attempts,
        )
        if isinstance(issued, Err):
            raise AbortTransaction(issued.error)
        return issued.unwrap()

    async def _notify_policy_issued(self, order: Order, brand: str | None) -> bool:
        brand = brand or self._settings.default_brand
        try:
            await self._notifier.notify_policy_issued(order.owner_id, order, brand)
        except Exception:
            logger.exception(
                "Could not queue policy-issued notification for order %s",
                order.reference_code,
            )
            return False
        return True

    @staticmethod
    def _summary_message(
        order: Order, callback: GatewayCallback, policy_issued: bool
    ) -> str:
        if policy_issued:
            return f"Payment successful. Policy {order.policy_number} has been issued."
        if order.has_policy:
            return f"Payment already processed for policy {order.policy_number}."
        if callback.is_failure:
            return "Payment was not completed. Please try again."
        return "Payment is being processed."
