# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Insurance package records read from the catalog."""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import Field

from .base import BaseModelConfig


class SalesChannel(str, Enum):
    """Distribution channel of a package."""

    BUSINESS = "B"
    CONSUMER = "C"


class InsurancePackage(BaseModelConfig):
    """Rates and issuer codes of an insurance package."""

    id: UUID = Field(..., description="Package identifier")
    name: str = Field(..., min_length=1, max_length=255)
    category_id: int = Field(..., ge=1, description="Insurance category")
    vat_rate_percent: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    discount_rate_percent: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    partner_code: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")
    insurance_company_code: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")
    channel: SalesChannel = Field(default=SalesChannel.CONSUMER)
    unit_size: Decimal | None = Field(
        default=None,
        gt=Decimal("0"),
        description="Overrides the configured coverage unit size",
    )
    rate_per_unit: Decimal | None = Field(
        default=None,
        gt=Decimal("0"),
        description="Overrides the configured premium per unit",
    )

    @property
    def is_business_to_business(self) -> bool:
        """Whether the package is sold business-to-business."""
        return self.channel == SalesChannel.BUSINESS
