# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Interfaces of the external collaborators the lifecycle services call."""

from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from attrs import field, frozen

from ..models.claim import Claim
from ..models.order import Order


@runtime_checkable
class DocumentStore(Protocol):
    """Stores uploaded files and returns an opaque path."""

    async def store(self, file: Any, folder: str) -> str: ...


@runtime_checkable
class Notifier(Protocol):
    """Delivers user-facing messages (SMS, email) about lifecycle events."""

    async def notify_policy_issued(
        self, user_id: UUID, order: Order, brand: str
    ) -> None: ...

    async def notify_claim_filed(
        self, user_id: UUID, claim: Claim, brand: str
    ) -> None: ...


@frozen
class ClaimDocuments:
    """Files uploaded with a claim, grouped the way they are stored."""

    claim_forms: tuple[Any, ...] = field(factory=tuple, converter=tuple)
    damage_photos: tuple[Any, ...] = field(factory=tuple, converter=tuple)
    supporting_documents: tuple[Any, ...] = field(factory=tuple, converter=tuple)


# Storage folders per document group.
QUOTATION_DOCUMENT_FOLDER = "quotation_documents"
ORDER_DOCUMENT_FOLDER = "order_documents"
CLAIM_FORM_FOLDER = "claim_forms"
DAMAGE_PHOTO_FOLDER = "damage_photos"
SUPPORTING_DOCUMENT_FOLDER = "supporting_documents"
