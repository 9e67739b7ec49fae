# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Quotation service for pricing and persisting coverage requests."""

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

import pydantic
from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.database import TRANSIENT_DB_ERRORS, Database
from ..core.errors import (
    AuthenticationRequired,
    InvalidTransition,
    LifecycleError,
    NotFound,
    ValidationError,
    forbidden,
)
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.context import RequestContext
from ..models.package import InsurancePackage
from ..models.quotation import (
    PendingQuotation,
    Quotation,
    QuotationStatus,
    QuotationSubmission,
)
from .collaborators import QUOTATION_DOCUMENT_FOLDER, DocumentStore
from .package_catalog import PackageCatalog
from .performance_monitor import performance_monitor
from .premium_calculator import PremiumCalculator
from .reference_ids import ReferenceIdGenerator
from .transaction_helpers import AbortTransaction, transient_error, with_unique_value

logger = get_logger(__name__)

QUOTATION_COLUMNS = """
    id, package_id, owner_id, reference_code, property_name, property_type,
    email, phone, address, coverage_amount, premium_amount, document_paths,
    status, created_at, updated_at
"""

REFERENCE_CONSTRAINT = "uq_quotations_reference_code"

AUTHENTICATION_MESSAGE = "Please sign in to save your quotation"


@beartype
def row_to_quotation(row: Any) -> Quotation:
    """Convert database row to Quotation model."""
    data = dict(row)
    data["document_paths"] = list(data.get("document_paths") or [])
    return Quotation.model_validate(data)


class QuotationService:
    """Service for quotation submission and retrieval."""

    def __init__(
        self,
        db: Database,
        catalog: PackageCatalog,
        document_store: DocumentStore,
        ids: ReferenceIdGenerator | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize quotation service with dependencies."""
        self._db = db
        self._catalog = catalog
        self._document_store = document_store
        self._settings = settings or get_settings()
        self._ids = ids or ReferenceIdGenerator(self._settings)

    @performance_monitor("submit_quotation")
    @beartype
    async def submit(
        self,
        submission: QuotationSubmission | Mapping[str, Any],
        documents: Sequence[Any],
        ctx: RequestContext,
    ) -> Result[Quotation, LifecycleError]:
        """Price and persist a quotation owned by the caller.

        Anonymous callers get ``AuthenticationRequired`` carrying the priced
        quotation and the stored document paths; nothing is persisted until
        they authenticate and call ``claim_pending``.
        """
        if isinstance(submission, Mapping):
            try:
                submission = QuotationSubmission.model_validate(dict(submission))
            except pydantic.ValidationError as exc:
                return Err(ValidationError.from_pydantic(exc))

        if submission.coverage_amount < self._settings.minimum_coverage_amount:
            return Err(
                ValidationError.for_field(
                    "coverage_amount",
                    "Coverage amount must be at least "
                    f"{self._settings.minimum_coverage_amount}",
                )
            )

        package_result = await self._catalog.get(submission.package_id)
        if isinstance(package_result, Err):
            return package_result
        package = package_result.unwrap()

        premium_result = self._price(submission.coverage_amount, package)
        if isinstance(premium_result, Err):
            return premium_result
        premium = premium_result.unwrap()

        document_paths = [
            await self._document_store.store(document, QUOTATION_DOCUMENT_FOLDER)
            for document in documents
        ]

        if not ctx.is_authenticated:
            pending = PendingQuotation(
                **submission.model_dump(),
                reference_code=self._ids.quotation_reference(),
                premium_amount=premium,
                document_paths=document_paths,
                computed_at=datetime.now(timezone.utc),
            )
            return Err(AuthenticationRequired(AUTHENTICATION_MESSAGE, pending=pending))

        return await self._persist(
            submission,
            owner_id=ctx.user_id,
            premium=premium,
            document_paths=document_paths,
            reference_code=None,
        )

    @beartype
    async def claim_pending(
        self, pending: PendingQuotation, ctx: RequestContext
    ) -> Result[Quotation, LifecycleError]:
        """Persist a quotation held while the caller authenticated.

        The premium is re-derived from the package so a tampered pending
        value is rejected rather than stored.
        """
        if not ctx.is_authenticated:
            return Err(AuthenticationRequired(AUTHENTICATION_MESSAGE, pending=pending))

        package_result = await self._catalog.get(pending.package_id)
        if isinstance(package_result, Err):
            return package_result

        premium_result = self._price(pending.coverage_amount, package_result.unwrap())
        if isinstance(premium_result, Err):
            return premium_result
        if premium_result.unwrap() != pending.premium_amount:
            return Err(
                ValidationError.for_field(
                    "premium_amount", "Premium no longer matches the package rates"
                )
            )

        return await self._persist(
            pending,
            owner_id=ctx.user_id,
            premium=pending.premium_amount,
            document_paths=list(pending.document_paths),
            reference_code=pending.reference_code,
        )

    @beartype
    async def get(
        self, quotation_id: UUID, ctx: RequestContext
    ) -> Result[Quotation, LifecycleError]:
        """Get a quotation owned by the caller."""
        try:
            row = await self._db.fetchrow(
                f"SELECT {QUOTATION_COLUMNS} FROM quotations WHERE id = $1",
                quotation_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("get_quotation", exc))
        if not row:
            return Err(NotFound(f"Quotation {quotation_id} not found"))

        quotation = row_to_quotation(row)
        if not ctx.owns(quotation.owner_id):
            logger.warning(
                "User %s denied access to quotation %s", ctx.user_id, quotation_id
            )
            return Err(forbidden())
        return Ok(quotation)

    @beartype
    async def list_for_owner(
        self, ctx: RequestContext
    ) -> Result[list[Quotation], LifecycleError]:
        """List the caller's quotations, newest first."""
        if not ctx.is_authenticated:
            return Err(AuthenticationRequired("Please sign in to view quotations"))

        try:
            rows = await self._db.fetch(
                f"""
                SELECT {QUOTATION_COLUMNS} FROM quotations
                WHERE owner_id = $1
                ORDER BY created_at DESC
                """,
                ctx.user_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("list_quotations", exc))
        return Ok([row_to_quotation(row) for row in rows])

    @beartype
    async def mark_ordered(
        self, quotation_id: UUID, conn: Any = None
    ) -> Result[Quotation, LifecycleError]:
        """Transition a quotation from pending to ordered.

        Pass ``conn`` to run inside the caller's transaction.
        """
        executor = conn if conn is not None else self._db
        try:
            row = await executor.fetchrow(
                f"""
                UPDATE quotations
                SET status = $2, updated_at = NOW()
                WHERE id = $1 AND status = $3
                RETURNING {QUOTATION_COLUMNS}
                """,
                quotation_id,
                QuotationStatus.ORDERED.value,
                QuotationStatus.PENDING.value,
            )
            if row:
                return Ok(row_to_quotation(row))

            status = await executor.fetchval(
                "SELECT status FROM quotations WHERE id = $1", quotation_id
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("mark_ordered", exc))
        if status is None:
            return Err(NotFound(f"Quotation {quotation_id} not found"))
        return Err(
            InvalidTransition(f"Quotation {quotation_id} has already been ordered")
        )

    def _price(
        self, coverage_amount: Decimal, package: InsurancePackage
    ) -> Result[Decimal, ValidationError]:
        return PremiumCalculator.compute_premium(
            coverage_amount,
            package.unit_size or self._settings.premium_unit_size,
            package.rate_per_unit or self._settings.premium_rate_per_unit,
        )

    async def _persist(
        self,
        submission: QuotationSubmission,
        *,
        owner_id: UUID | None,
        premium: Decimal,
        document_paths: list[str],
        reference_code: str | None,
    ) -> Result[Quotation, LifecycleError]:
        held = [reference_code] if reference_code else []

        def next_reference() -> str:
            return held.pop() if held else self._ids.quotation_reference()

        async def insert(conn: Any, reference: str) -> Any:
            return await conn.fetchrow(
                f"""
                INSERT INTO quotations (
                    package_id, owner_id, reference_code, property_name,
                    property_type, email, phone, address, coverage_amount,
                    premium_amount, document_paths, status
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
                RETURNING {QUOTATION_COLUMNS}
                """,
                submission.package_id,
                owner_id,
                reference,
                submission.property_name,
                submission.property_type.value,
                str(submission.email),
                submission.phone,
                submission.address.model_dump(),
                submission.coverage_amount,
                premium,
                document_paths,
                QuotationStatus.PENDING.value,
            )

        try:
            async with self._db.transaction() as conn:
                inserted = await with_unique_value(
                    conn,
                    next_reference,
                    insert,
                    constraint=REFERENCE_CONSTRAINT,
                    max_attempts=self._settings.reference_max_attempts,
                )
                if isinstance(inserted, Err):
                    raise AbortTransaction(inserted.error)
        except AbortTransaction as abort:
            return Err(abort.error)
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("submit_quotation", exc))

        quotation = row_to_quotation(inserted.unwrap())
        logger.info(
            "Quotation %s created for user %s (premium %s)",
            quotation.reference_code,
            owner_id,
            quotation.premium_amount,
        )
        return Ok(quotation)
