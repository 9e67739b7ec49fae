# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Payment gateway callback and reconciliation result models."""

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlparse
from uuid import UUID

from pydantic import Field

from .base import BaseModelConfig
from .order import Order

GATEWAY_SUCCESS_STATUS = "Complete"

# Gateway statuses that close the order as declined. Anything else that is
# not a success leaves the order pending.
GATEWAY_FAILURE_STATUSES = frozenset(
    {"Failed", "Failure", "Declined", "Cancelled", "Canceled", "Cancel", "Rejected"}
)


class GatewayCallback(BaseModelConfig):
    """One inbound, unauthenticated payment gateway callback."""

    correlation_token: str = Field(..., min_length=1, max_length=128)
    gateway_status: str = Field(..., max_length=64)
    gateway_response_payload: str = Field(default="")
    gateway_name: str = Field(default="", max_length=64)
    is_machine_caller: bool = Field(default=False)

    @property
    def is_success(self) -> bool:
        """Whether the gateway reports a settled payment."""
        return self.gateway_status == GATEWAY_SUCCESS_STATUS

    @property
    def is_failure(self) -> bool:
        """Whether the gateway reports a definitive decline."""
        return self.gateway_status in GATEWAY_FAILURE_STATUSES

    @classmethod
    def from_gateway_payload(cls, payload: Mapping[str, Any]) -> "GatewayCallback":
        """Build a callback from the raw gateway field names.

        Raises ``pydantic.ValidationError`` when the correlation token is
        missing.
        """
        is_api = payload.get("is_api", False)
        if isinstance(is_api, str):
            is_api = is_api.strip().lower() == "true"
        status = payload.get("pgw_status") or payload.get("pgw_msg") or ""
        return cls.model_validate(
            {
                "correlation_token": payload.get("pgw_shuffle_id", ""),
                "gateway_status": str(status),
                "gateway_response_payload": str(payload.get("pgw_response") or ""),
                "gateway_name": str(payload.get("pgw_name") or ""),
                "is_machine_caller": bool(is_api),
            }
        )


def extract_payment_ref_id(payload: str | None) -> str | None:
    """Pull ``payment_ref_id`` out of the query string of a gateway response."""
    if not payload:
        return None
    query = urlparse(payload).query
    if not query:
        return None
    values = parse_qs(query).get("payment_ref_id")
    return values[0] if values else None


class PaymentSummary(BaseModelConfig):
    """Structured response returned to machine callers."""

    user_id: UUID = Field(...)
    order: Order = Field(...)
    gateway_name: str = Field(...)
    gateway_response: str = Field(...)
    gateway_status: str = Field(...)
    payment_ref_id: str | None = Field(default=None)
    message: str = Field(...)


class ReconciliationOutcome(BaseModelConfig):
    """Result of applying one gateway callback."""

    order: Order = Field(...)
    policy_issued: bool = Field(
        ..., description="A policy number was assigned by this callback"
    )
    notification_queued: bool = Field(default=False)
    payment_ref_id: str | None = Field(default=None)
    summary: PaymentSummary | None = Field(
        default=None, description="Only populated for machine callers"
    )
