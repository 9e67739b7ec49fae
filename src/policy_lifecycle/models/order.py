# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Order domain models.

An order is the binding application derived from one quotation. It carries
the financial breakdown, the payment gateway correlation, and, once payment
settles, the issued policy and its used-coverage accumulator.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import Field, model_validator

from .base import BaseModelConfig, IdentifiableModel, Money
from .quotation import Address, PropertyType


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class PaymentState(str, Enum):
    """Order state with respect to the payment gateway."""

    NOT_STARTED = "NOT_STARTED"
    AWAITING_CALLBACK = "AWAITING_CALLBACK"
    SETTLED = "SETTLED"
    DECLINED = "DECLINED"


class ChargeBreakdown(BaseModelConfig):
    """Premium decomposition.

    ``net`` subtracts VAT while ``final_premium`` adds it back; both are kept
    exactly as the business computes them.
    """

    premium: Money = Field(...)
    discount: Money = Field(...)
    vat: Money = Field(...)
    net: Money = Field(..., description="Administrative total")
    final_premium: Money = Field(..., description="Amount charged to the customer")


class Order(IdentifiableModel):
    """Persisted order."""

    reference_code: str = Field(..., min_length=1)
    quotation_id: UUID = Field(...)
    package_id: UUID = Field(...)
    category_id: int = Field(..., ge=1)
    owner_id: UUID = Field(...)

    email: str = Field(...)
    phone: str = Field(...)
    address: Address = Field(...)
    property_type: PropertyType = Field(...)
    document_paths: list[str] = Field(default_factory=list)

    coverage_amount: Money = Field(...)
    base_premium: Money = Field(...)
    discount_amount: Money = Field(...)
    vat_amount: Money = Field(...)
    net_amount: Money = Field(...)
    final_premium: Money = Field(...)

    gateway_token: str | None = Field(default=None)
    gateway_status: str | None = Field(default=None)
    gateway_response: str | None = Field(default=None)
    gateway_name: str | None = Field(default=None)

    policy_number: str | None = Field(default=None, min_length=19, max_length=19)
    policy_start_date: date | None = Field(default=None)
    policy_end_date: date | None = Field(default=None)
    used_coverage: Money = Field(default=Decimal("0"), ge=Decimal("0"))

    status: OrderStatus = Field(default=OrderStatus.PENDING)

    @model_validator(mode="after")
    def validate_policy_period(self) -> "Order":
        """Policy dates exist only alongside a policy number."""
        dates = (self.policy_start_date, self.policy_end_date)
        if self.policy_number is None and any(d is not None for d in dates):
            raise ValueError("Policy dates require an issued policy number")
        if self.policy_number is not None and any(d is None for d in dates):
            raise ValueError("Issued policies need start and end dates")
        if (
            self.policy_start_date is not None
            and self.policy_end_date is not None
            and self.policy_end_date <= self.policy_start_date
        ):
            raise ValueError("Policy end date must be after start date")
        return self

    @property
    def has_policy(self) -> bool:
        """Whether a policy number has been issued."""
        return self.policy_number is not None

    @property
    def remaining_coverage(self) -> Decimal:
        """Coverage not yet claimed; negative when over-claimed."""
        return self.coverage_amount - self.used_coverage

    @property
    def charges(self) -> ChargeBreakdown:
        """The stored financial breakdown."""
        return ChargeBreakdown(
            premium=self.base_premium,
            discount=self.discount_amount,
            vat=self.vat_amount,
            net=self.net_amount,
            final_premium=self.final_premium,
        )

    @property
    def payment_state(self) -> PaymentState:
        """Derive the payment state from stored gateway fields."""
        if self.policy_number is not None:
            return PaymentState.SETTLED
        if self.status == OrderStatus.REJECTED and self.gateway_status is not None:
            return PaymentState.DECLINED
        if self.gateway_token:
            return PaymentState.AWAITING_CALLBACK
        return PaymentState.NOT_STARTED
