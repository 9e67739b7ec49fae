# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim service for filing claims against issued policies."""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

import pydantic
from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.database import TRANSIENT_DB_ERRORS, Database
from ..core.errors import (
    AuthenticationRequired,
    FieldIssue,
    LifecycleError,
    NotFound,
    PolicyNotFound,
    ValidationError,
    forbidden,
)
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.claim import DEFAULT_STATUS_REASON, Claim, ClaimStatus, ClaimSubmission
from ..models.context import RequestContext
from .collaborators import (
    CLAIM_FORM_FOLDER,
    DAMAGE_PHOTO_FOLDER,
    SUPPORTING_DOCUMENT_FOLDER,
    ClaimDocuments,
    DocumentStore,
    Notifier,
)
from .order_service import ORDER_COLUMNS, row_to_order
from .performance_monitor import performance_monitor
from .reference_ids import ReferenceIdGenerator
from .transaction_helpers import AbortTransaction, transient_error, with_unique_value

logger = get_logger(__name__)

CLAIM_COLUMNS = """
    id, policy_number, reference_code, incident_date, incident_time,
    incident_location, incident_description, authorities_notified,
    police_report_filed, damage_type, damage_description, claimed_amount,
    is_habitable, emergency_measures_taken, measures_description,
    terms_accepted, claim_form_paths, damage_photo_paths,
    supporting_document_paths, status, status_reason, created_at, updated_at
"""

REFERENCE_CONSTRAINT = "uq_claims_reference_code"

# Narrative fields that must not be blank.
REQUIRED_TEXT_FIELDS = (
    "incident_location",
    "incident_description",
    "damage_type",
    "damage_description",
)


@beartype
def row_to_claim(row: Any) -> Claim:
    """Convert database row to Claim model."""
    data = {key: value for key, value in dict(row).items() if key != "owner_id"}
    for key in ("claim_form_paths", "damage_photo_paths", "supporting_document_paths"):
        data[key] = list(data.get(key) or [])
    return Claim.model_validate(data)


class ClaimService:
    """Service for claim filing and owner-facing claim views."""

    def __init__(
        self,
        db: Database,
        document_store: DocumentStore,
        notifier: Notifier | None = None,
        ids: ReferenceIdGenerator | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize claim service with dependencies."""
        self._db = db
        self._document_store = document_store
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._ids = ids or ReferenceIdGenerator(self._settings)

    @performance_monitor("file_claim")
    @beartype
    async def file_claim(
        self,
        policy_number: str,
        submission: ClaimSubmission | Mapping[str, Any],
        documents: ClaimDocuments,
        ctx: RequestContext,
    ) -> Result[Claim, LifecycleError]:
        """File a claim against one of the caller's policies.

        The claimed amount is added to the order's used coverage in the same
        transaction that records the claim. Coverage is debited on filing,
        before adjudication, and is not capped.

        Args:
            policy_number: Policy the claim is filed against
            submission: Claim narrative and amount
            documents: Uploaded claim forms, damage photos and supporting files
            ctx: Caller context; must own the policy

        Returns:
            Result containing the pending claim or an error value
        """
        try:
            row = await self._db.fetchrow(
                f"SELECT {ORDER_COLUMNS} FROM orders WHERE policy_number = $1",
                policy_number,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("file_claim", exc))
        if not row:
            return Err(PolicyNotFound(f"Policy {policy_number} not found"))

        order = row_to_order(row)
        if not ctx.owns(order.owner_id):
            logger.warning(
                "User %s denied filing a claim on policy %s", ctx.user_id, policy_number
            )
            return Err(forbidden())

        if isinstance(submission, Mapping):
            try:
                submission = ClaimSubmission.model_validate(dict(submission))
            except pydantic.ValidationError as exc:
                return Err(ValidationError.from_pydantic(exc))

        invalid = self._validate(submission, documents)
        if invalid is not None:
            return Err(invalid)

        claim_form_paths = await self._store_all(
            documents.claim_forms, CLAIM_FORM_FOLDER
        )
        damage_photo_paths = await self._store_all(
            documents.damage_photos, DAMAGE_PHOTO_FOLDER
        )
        supporting_document_paths = await self._store_all(
            documents.supporting_documents, SUPPORTING_DOCUMENT_FOLDER
        )

        async def insert(conn: Any, reference: str) -> Any:
            return await conn.fetchrow(
                f"""
                INSERT INTO claims (
                    policy_number, reference_code, incident_date, incident_time,
                    incident_location, incident_description, authorities_notified,
                    police_report_filed, damage_type, damage_description,
                    claimed_amount, is_habitable, emergency_measures_taken,
                    measures_description, terms_accepted, claim_form_paths,
                    damage_photo_paths, supporting_document_paths, status,
                    status_reason
                ) VALUES (
                    $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14,
                    $15, $16, $17, $18, $19, $20
                )
                RETURNING {CLAIM_COLUMNS}
                """,
                policy_number,
                reference,
                submission.incident_date,
                submission.incident_time,
                submission.incident_location,
                submission.incident_description,
                submission.authorities_notified,
                submission.police_report_filed,
                submission.damage_type,
                submission.damage_description,
                submission.claimed_amount,
                submission.is_habitable,
                submission.emergency_measures_taken,
                submission.measures_description,
                submission.terms_accepted,
                claim_form_paths,
                damage_photo_paths,
                supporting_document_paths,
                ClaimStatus.PENDING.value,
                DEFAULT_STATUS_REASON,
            )

        try:
            async with self._db.transaction() as conn:
                coverage = await conn.fetchrow(
                    """
                    UPDATE orders
                    SET used_coverage = used_coverage + $2, updated_at = NOW()
                    WHERE id = $1
                    RETURNING used_coverage, coverage_amount
                    """,
                    order.id,
                    submission.claimed_amount,
                )
                if not coverage:
                    raise AbortTransaction(
                        PolicyNotFound(f"Policy {policy_number} not found")
                    )

                inserted = await with_unique_value(
                    conn,
                    self._ids.claim_reference,
                    insert,
                    constraint=REFERENCE_CONSTRAINT,
                    max_attempts=self._settings.reference_max_attempts,
                )
                if isinstance(inserted, Err):
                    raise AbortTransaction(inserted.error)
        except AbortTransaction as abort:
            return Err(abort.error)
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("file_claim", exc))

        claim = row_to_claim(inserted.unwrap())
        used = Decimal(coverage["used_coverage"])
        if used > Decimal(coverage["coverage_amount"]):
            logger.warning(
                "Policy %s claims total %s, above its coverage of %s",
                policy_number,
                used,
                coverage["coverage_amount"],
            )
        logger.info(
            "Claim %s filed on policy %s for %s",
            claim.reference_code,
            policy_number,
            claim.claimed_amount,
        )

        await self._notify_claim_filed(order.owner_id, claim, ctx.brand)
        return Ok(claim)

    @beartype
    async def list_claims(
        self, ctx: RequestContext
    ) -> Result[list[Claim], LifecycleError]:
        """List claims on any of the caller's policies, newest first."""
        if not ctx.is_authenticated:
            return Err(AuthenticationRequired("Please sign in to view claims"))

        try:
            rows = await self._db.fetch(
                f"""
                SELECT {CLAIM_COLUMNS} FROM claims
                WHERE policy_number IN (
                    SELECT policy_number FROM orders
                    WHERE owner_id = $1 AND policy_number IS NOT NULL
                )
                ORDER BY created_at DESC
                """,
                ctx.user_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("list_claims", exc))
        return Ok([row_to_claim(row) for row in rows])

    @beartype
    async def get_claim(
        self, claim_id: UUID, ctx: RequestContext
    ) -> Result[Claim, LifecycleError]:
        """Get a claim filed on one of the caller's policies."""
        try:
            row = await self._db.fetchrow(
                """
                SELECT c.*, o.owner_id
                FROM claims c
                JOIN orders o ON o.policy_number = c.policy_number
                WHERE c.id = $1
                """,
                claim_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("get_claim", exc))
        if not row:
            return Err(NotFound(f"Claim {claim_id} not found"))
        if not ctx.owns(row["owner_id"]):
            logger.warning("User %s denied access to claim %s", ctx.user_id, claim_id)
            return Err(forbidden())
        return Ok(row_to_claim(row))

    @staticmethod
    def _validate(
        submission: ClaimSubmission, documents: ClaimDocuments
    ) -> ValidationError | None:
        """Collect every business-rule violation so they are reported together."""
        issues = []
        if submission.claimed_amount <= 0:
            issues.append(
                FieldIssue("claimed_amount", "Claimed amount must be greater than zero")
            )
        for name in REQUIRED_TEXT_FIELDS:
            if not getattr(submission, name).strip():
                issues.append(FieldIssue(name, "This field is required"))
        if submission.emergency_measures_taken and not (
            submission.measures_description or ""
        ).strip():
            issues.append(
                FieldIssue(
                    "measures_description",
                    "Describe the emergency measures that were taken",
                )
            )
        if not submission.terms_accepted:
            issues.append(
                FieldIssue("terms_accepted", "The claim terms must be accepted")
            )
        if not documents.damage_photos:
            issues.append(
                FieldIssue("damage_photos", "At least one damage photo is required")
            )

        if not issues:
            return None
        names = ", ".join(issue.name for issue in issues)
        return ValidationError(
            message=f"Invalid or missing fields: {names}", fields=tuple(issues)
        )

    async def _store_all(self, files: tuple[Any, ...], folder: str) -> list[str]:
        return [await self._document_store.store(file, folder) for file in files]

    async def _notify_claim_filed(self, user_id: UUID, claim: Claim, brand: str) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify_claim_filed(user_id, claim, brand)
        except Exception:
            logger.exception(
                "Could not queue claim-filed notification for claim %s",
                claim.reference_code,
            )
