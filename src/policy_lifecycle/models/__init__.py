# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain models package for the policy lifecycle engine.

This package exports the immutable Pydantic models for every lifecycle
stage: quotation, order, payment reconciliation and claim.
"""

from .base import BaseModelConfig, IdentifiableModel, Money, TimestampedModel
from .claim import Claim, ClaimStatus, ClaimSubmission
from .context import RequestContext
from .order import ChargeBreakdown, Order, OrderStatus, PaymentState
from .package import InsurancePackage, SalesChannel
from .payment import (
    GatewayCallback,
    PaymentSummary,
    ReconciliationOutcome,
    extract_payment_ref_id,
)
from .quotation import (
    Address,
    PendingQuotation,
    PropertyType,
    Quotation,
    QuotationStatus,
    QuotationSubmission,
)

__all__ = [
    # Base models
    "BaseModelConfig",
    "TimestampedModel",
    "IdentifiableModel",
    "Money",
    "RequestContext",
    # Package models
    "InsurancePackage",
    "SalesChannel",
    # Quotation models
    "Address",
    "PendingQuotation",
    "PropertyType",
    "Quotation",
    "QuotationStatus",
    "QuotationSubmission",
    # Order models
    "ChargeBreakdown",
    "Order",
    "OrderStatus",
    "PaymentState",
    # Payment models
    "GatewayCallback",
    "PaymentSummary",
    "ReconciliationOutcome",
    "extract_payment_ref_id",
    # Claim models
    "Claim",
    "ClaimStatus",
    "ClaimSubmission",
]
