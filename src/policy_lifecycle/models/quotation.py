# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Quotation domain models.

A quotation is a priced, non-binding request for coverage. It is submitted
once, priced on submission, and later converted into exactly one order.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import EmailStr, Field

from .base import BaseModelConfig, IdentifiableModel, Money


class QuotationStatus(str, Enum):
    """Quotation lifecycle states."""

    PENDING = "pending"
    ORDERED = "ordered"


class PropertyType(str, Enum):
    """Kinds of insured property."""

    COMPANY = "company"
    ORGANIZATION = "organization"
    OFFICE = "office"
    HOME = "home"
    COMMERCIAL = "commercial"


class Address(BaseModelConfig):
    """Postal address bundle, stored as one JSON document."""

    address_line: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)


class QuotationSubmission(BaseModelConfig):
    """Caller-supplied quotation request."""

    package_id: UUID = Field(..., description="Insurance package being quoted")
    property_name: str = Field(..., min_length=1, max_length=255)
    property_type: PropertyType = Field(...)
    email: EmailStr = Field(..., max_length=255)
    phone: str = Field(..., min_length=1, max_length=20)
    address: Address = Field(...)
    coverage_amount: Money = Field(..., description="Requested coverage")


class PendingQuotation(QuotationSubmission):
    """Priced quotation held by the caller until the user authenticates."""

    reference_code: str = Field(..., min_length=1)
    premium_amount: Money = Field(...)
    document_paths: list[str] = Field(default_factory=list)
    computed_at: datetime = Field(...)


class Quotation(IdentifiableModel):
    """Persisted quotation."""

    package_id: UUID = Field(...)
    owner_id: UUID | None = Field(default=None, description="Owning user")
    reference_code: str = Field(..., min_length=1)
    property_name: str = Field(...)
    property_type: PropertyType = Field(...)
    email: str = Field(...)
    phone: str = Field(...)
    address: Address = Field(...)
    coverage_amount: Money = Field(...)
    premium_amount: Money = Field(...)
    document_paths: list[str] = Field(default_factory=list)
    status: QuotationStatus = Field(default=QuotationStatus.PENDING)

    @property
    def is_ordered(self) -> bool:
        """Whether the quotation has already been converted."""
        return self.status == QuotationStatus.ORDERED
