# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Order service for quotation conversion and owner-facing order views."""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID

from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.database import TRANSIENT_DB_ERRORS, Database
from ..core.errors import (
    AuthenticationRequired,
    InvalidTransition,
    LifecycleError,
    NotFound,
    forbidden,
)
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.context import RequestContext
from ..models.order import Order, OrderStatus
from .collaborators import ORDER_DOCUMENT_FOLDER, DocumentStore
from .package_catalog import PackageCatalog
from .performance_monitor import performance_monitor
from .premium_calculator import PremiumCalculator
from .quotation_service import QUOTATION_COLUMNS, QuotationService, row_to_quotation
from .reference_ids import ReferenceIdGenerator
from .transaction_helpers import AbortTransaction, transient_error, with_unique_value

logger = get_logger(__name__)

ORDER_COLUMNS = """
    id, reference_code, quotation_id, package_id, category_id, owner_id,
    email, phone, address, property_type, document_paths,
    coverage_amount, base_premium, discount_amount, vat_amount, net_amount,
    final_premium, gateway_token, gateway_status, gateway_response,
    gateway_name, policy_number, policy_start_date, policy_end_date,
    used_coverage, status, created_at, updated_at
"""

REFERENCE_CONSTRAINT = "uq_orders_reference_code"
GATEWAY_TOKEN_CONSTRAINT = "uq_orders_gateway_token"


@beartype
def row_to_order(row: Any) -> Order:
    """Convert database row to Order model."""
    data = dict(row)
    data["document_paths"] = list(data.get("document_paths") or [])
    return Order.model_validate(data)


class OrderService:
    """Service converting quotations into orders and serving order views."""

    def __init__(
        self,
        db: Database,
        catalog: PackageCatalog,
        quotations: QuotationService,
        document_store: DocumentStore,
        ids: ReferenceIdGenerator | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize order service with dependencies."""
        self._db = db
        self._catalog = catalog
        self._quotations = quotations
        self._document_store = document_store
        self._settings = settings or get_settings()
        self._ids = ids or ReferenceIdGenerator(self._settings)

    @performance_monitor("create_order")
    @beartype
    async def create_order(
        self, quotation_id: UUID, ctx: RequestContext
    ) -> Result[Order, LifecycleError]:
        """Convert the caller's quotation into a pending order.

        The order insert and the quotation's pending -> ordered flip commit
        together, with the quotation row locked so two conversions of the same
        quotation cannot both succeed.

        Args:
            quotation_id: Quotation to convert
            ctx: Caller context; must own the quotation

        Returns:
            Result containing the new order or an error value
        """
        try:
            async with self._db.transaction() as conn:
                row = await conn.fetchrow(
                    f"""
                    SELECT {QUOTATION_COLUMNS} FROM quotations
                    WHERE id = $1
                    FOR UPDATE
                    """,
                    quotation_id,
                )
                if not row:
                    return Err(NotFound(f"Quotation {quotation_id} not found"))

                quotation = row_to_quotation(row)
                if not ctx.owns(quotation.owner_id):
                    logger.warning(
                        "User %s denied ordering quotation %s",
                        ctx.user_id,
                        quotation_id,
                    )
                    return Err(forbidden())
                if quotation.is_ordered:
                    return Err(
                        InvalidTransition(
                            f"Quotation {quotation_id} has already been ordered"
                        )
                    )

                package_result = await self._catalog.get(quotation.package_id, conn)
                if isinstance(package_result, Err):
                    return package_result
                package = package_result.unwrap()

                charges = PremiumCalculator.compute_charges(
                    quotation.premium_amount,
                    package.discount_rate_percent,
                    package.vat_rate_percent,
                )

                async def insert(conn: Any, reference: str) -> Any:
                    return await conn.fetchrow(
                        f"""
                        INSERT INTO orders (
                            reference_code, quotation_id, package_id, category_id,
                            owner_id, email, phone, address, property_type,
                            document_paths, coverage_amount, base_premium,
                            discount_amount, vat_amount, net_amount, final_premium,
                            used_coverage, status
                        ) VALUES (
                            $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12,
                            $13, $14, $15, $16, $17, $18
                        )
                        RETURNING {ORDER_COLUMNS}
                        """,
                        reference,
                        quotation.id,
                        quotation.package_id,
                        package.category_id,
                        quotation.owner_id,
                        quotation.email,
                        quotation.phone,
                        quotation.address.model_dump(),
                        quotation.property_type.value,
                        list(quotation.document_paths),
                        quotation.coverage_amount,
                        charges.premium,
                        charges.discount,
                        charges.vat,
                        charges.net,
                        charges.final_premium,
                        Decimal("0"),
                        OrderStatus.PENDING.value,
                    )

                inserted = await with_unique_value(
                    conn,
                    self._ids.order_reference,
                    insert,
                    constraint=REFERENCE_CONSTRAINT,
                    max_attempts=self._settings.reference_max_attempts,
                )
                if isinstance(inserted, Err):
                    raise AbortTransaction(inserted.error)

                marked = await self._quotations.mark_ordered(quotation_id, conn=conn)
                if isinstance(marked, Err):
                    raise AbortTransaction(marked.error)
        except AbortTransaction as abort:
            return Err(abort.error)
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("create_order", exc))

        order = row_to_order(inserted.unwrap())
        logger.info(
            "Order %s created from quotation %s (final premium %s)",
            order.reference_code,
            quotation.reference_code,
            order.final_premium,
        )
        return Ok(order)

    @beartype
    async def get_order(
        self, order_id: UUID, ctx: RequestContext
    ) -> Result[Order, LifecycleError]:
        """Get an order owned by the caller."""
        try:
            row = await self._db.fetchrow(
                f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = $1", order_id
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("get_order", exc))
        if not row:
            return Err(NotFound(f"Order {order_id} not found"))

        order = row_to_order(row)
        if not ctx.owns(order.owner_id):
            logger.warning("User %s denied access to order %s", ctx.user_id, order_id)
            return Err(forbidden())
        return Ok(order)

    @beartype
    async def list_orders(
        self, ctx: RequestContext
    ) -> Result[list[Order], LifecycleError]:
        """List the caller's orders, newest first."""
        if not ctx.is_authenticated:
            return Err(AuthenticationRequired("Please sign in to view orders"))

        try:
            rows = await self._db.fetch(
                f"""
                SELECT {ORDER_COLUMNS} FROM orders
                WHERE owner_id = $1
                ORDER BY created_at DESC
                """,
                ctx.user_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("list_orders", exc))
        return Ok([row_to_order(row) for row in rows])

    @beartype
    async def list_policies(
        self, ctx: RequestContext
    ) -> Result[list[Order], LifecycleError]:
        """List the caller's orders that carry an issued policy."""
        if not ctx.is_authenticated:
            return Err(AuthenticationRequired("Please sign in to view policies"))

        try:
            rows = await self._db.fetch(
                f"""
                SELECT {ORDER_COLUMNS} FROM orders
                WHERE owner_id = $1 AND policy_number IS NOT NULL
                ORDER BY policy_start_date DESC, created_at DESC
                """,
                ctx.user_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("list_policies", exc))
        return Ok([row_to_order(row) for row in rows])

    @beartype
    async def get_policy(
        self, order_id: UUID, ctx: RequestContext
    ) -> Result[Order, LifecycleError]:
        """Get the caller's order only once its policy has been issued."""
        result = await self.get_order(order_id, ctx)
        if isinstance(result, Err):
            return result
        if not result.unwrap().has_policy:
            return Err(NotFound(f"No policy has been issued for order {order_id}"))
        return result

    @beartype
    async def assign_gateway_token(
        self, order_id: UUID, ctx: RequestContext
    ) -> Result[Order, LifecycleError]:
        """Assign a fresh gateway correlation token before the payment redirect.

        Only pending orders without a policy accept a token. Assigning again
        while a callback is awaited replaces the token and clears the last
        gateway status.
        """
        try:
            async with self._db.transaction() as conn:
                row = await conn.fetchrow(
                    f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = $1 FOR UPDATE",
                    order_id,
                )
                if not row:
                    return Err(NotFound(f"Order {order_id} not found"))

                order = row_to_order(row)
                if not ctx.owns(order.owner_id):
                    return Err(forbidden())
                if order.has_policy or order.status != OrderStatus.PENDING:
                    return Err(
                        InvalidTransition(
                            f"Order {order.reference_code} is not awaiting payment"
                        )
                    )

                async def assign(conn: Any, token: str) -> Any:
                    return await conn.fetchrow(
                        f"""
                        UPDATE orders
                        SET gateway_token = $2, gateway_status = NULL,
                            updated_at = NOW()
                        WHERE id = $1
                        RETURNING {ORDER_COLUMNS}
                        """,
                        order_id,
                        token,
                    )

                assigned = await with_unique_value(
                    conn,
                    self._ids.gateway_token,
                    assign,
                    constraint=GATEWAY_TOKEN_CONSTRAINT,
                    max_attempts=self._settings.reference_max_attempts,
                )
                if isinstance(assigned, Err):
                    raise AbortTransaction(assigned.error)
        except AbortTransaction as abort:
            return Err(abort.error)
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("assign_gateway_token", exc))

        logger.info("Gateway token assigned to order %s", order.reference_code)
        return Ok(row_to_order(assigned.unwrap()))

    @beartype
    async def resubmit_documents(
        self, order_id: UUID, documents: Sequence[Any], ctx: RequestContext
    ) -> Result[Order, LifecycleError]:
        """Replace the documents of a rejected order and reopen it."""
        result = await self.get_order(order_id, ctx)
        if isinstance(result, Err):
            return result
        order = result.unwrap()
        if order.status != OrderStatus.REJECTED:
            return Err(
                InvalidTransition(
                    f"Only rejected orders accept new documents; "
                    f"order {order.reference_code} is {order.status.value}"
                )
            )

        document_paths = [
            await self._document_store.store(document, ORDER_DOCUMENT_FOLDER)
            for document in documents
        ]

        try:
            row = await self._db.fetchrow(
                f"""
                UPDATE orders
                SET document_paths = $2, status = $3, updated_at = NOW()
                WHERE id = $1 AND status = $4
                RETURNING {ORDER_COLUMNS}
                """,
                order_id,
                document_paths,
                OrderStatus.PENDING.value,
                OrderStatus.REJECTED.value,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("resubmit_documents", exc))

        if not row:
            return Err(
                InvalidTransition(f"Order {order.reference_code} is no longer rejected")
            )

        logger.info("Order %s reopened with new documents", order.reference_code)
        return Ok(row_to_order(row))
