# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim domain models.

Claims are filed against a policy number, never against an order id, and
are created only in ``pending`` status; adjudication happens elsewhere.
"""

from datetime import date, time
from decimal import Decimal
from enum import Enum

from pydantic import Field

from .base import BaseModelConfig, IdentifiableModel, Money


class ClaimStatus(str, Enum):
    """Claim adjudication states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


DEFAULT_STATUS_REASON = "N/A"


class ClaimSubmission(BaseModelConfig):
    """Caller-supplied claim narrative and metadata.

    Business rules (positive amount, non-blank narrative, accepted terms) are
    checked by the claim service so every offending field is reported at once.
    Boolean flags accept ``"yes"``/``"no"`` form values.
    """

    incident_date: date = Field(...)
    incident_time: time = Field(...)
    incident_location: str = Field(default="", max_length=500)
    incident_description: str = Field(default="", max_length=5000)
    authorities_notified: bool = Field(...)
    police_report_filed: bool = Field(...)
    damage_type: str = Field(default="", max_length=255)
    damage_description: str = Field(default="", max_length=5000)
    claimed_amount: Money = Field(..., description="Estimated loss")
    is_habitable: bool = Field(...)
    emergency_measures_taken: bool = Field(...)
    measures_description: str | None = Field(default=None, max_length=5000)
    terms_accepted: bool = Field(default=False)


class Claim(IdentifiableModel):
    """Persisted claim."""

    policy_number: str = Field(..., min_length=1)
    reference_code: str = Field(..., min_length=1)
    incident_date: date = Field(...)
    incident_time: time = Field(...)
    incident_location: str = Field(...)
    incident_description: str = Field(...)
    authorities_notified: bool = Field(...)
    police_report_filed: bool = Field(...)
    damage_type: str = Field(...)
    damage_description: str = Field(...)
    claimed_amount: Money = Field(..., gt=Decimal("0"))
    is_habitable: bool = Field(...)
    emergency_measures_taken: bool = Field(...)
    measures_description: str | None = Field(default=None)
    terms_accepted: bool = Field(...)
    claim_form_paths: list[str] = Field(default_factory=list)
    damage_photo_paths: list[str] = Field(default_factory=list)
    supporting_document_paths: list[str] = Field(default_factory=list)
    status: ClaimStatus = Field(default=ClaimStatus.PENDING)
    status_reason: str = Field(default=DEFAULT_STATUS_REASON)
