# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Business logic service layer."""

from ..core.result_types import Err, Ok, Result
from .claim_service import ClaimService
from .collaborators import ClaimDocuments, DocumentStore, Notifier
from .notifications import QueuedNotifier
from .order_service import OrderService
from .package_catalog import PackageCatalog
from .payment_reconciler import PaymentReconciler
from .premium_calculator import PremiumCalculator
from .quotation_service import QuotationService
from .reference_ids import ReferenceIdGenerator

__all__ = [
    "Result",
    "Ok",
    "Err",
    "PremiumCalculator",
    "ReferenceIdGenerator",
    "PackageCatalog",
    "QuotationService",
    "OrderService",
    "PaymentReconciler",
    "ClaimService",
    "ClaimDocuments",
    "DocumentStore",
    "Notifier",
    "QueuedNotifier",
]
