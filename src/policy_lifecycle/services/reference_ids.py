# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Human-readable reference codes, policy numbers and gateway tokens.

Reference codes look like ``TIQ-20250114-7KQ2ZD``. They are not unique by
construction; the unique constraints on the reference columns catch the rare
collision and the services regenerate (see ``transaction_helpers``).
"""

import secrets
import string
from collections.abc import Callable
from datetime import date

from beartype import beartype

from ..core.config import Settings, get_settings
from ..models.package import InsurancePackage

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_SUFFIX_LENGTH = 6
POLICY_SERIAL_LENGTH = 10
POLICY_NUMBER_LENGTH = 19


class ReferenceIdGenerator:
    """Generates identifiers shown to users and sent to the payment gateway."""

    def __init__(
        self,
        settings: Settings | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize generator.

        Args:
            settings: Prefixes and fallback issuer codes
            today: Clock used for the date part of every identifier
        """
        self._settings = settings or get_settings()
        self._today = today

    @beartype
    def _reference(self, prefix: str) -> str:
        suffix = "".join(
            secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_SUFFIX_LENGTH)
        )
        return f"{prefix}-{self._today():%Y%m%d}-{suffix}"

    @beartype
    def quotation_reference(self) -> str:
        """Reference code for a new quotation."""
        return self._reference(self._settings.quotation_reference_prefix)

    @beartype
    def order_reference(self) -> str:
        """Reference code for a new order."""
        return self._reference(self._settings.order_reference_prefix)

    @beartype
    def claim_reference(self) -> str:
        """Reference code for a new claim."""
        return self._reference(self._settings.claim_reference_prefix)

    @beartype
    def policy_number(self, package: InsurancePackage) -> str:
        """Structured policy number for an order of ``package``.

        Layout: partner code, insurance company code, category code, channel
        digit (``1`` for business-to-business), two-digit year, then a random
        ten-digit serial.
        """
        partner = package.partner_code or self._settings.default_partner_code
        insurer = (
            package.insurance_company_code
            or self._settings.default_insurance_company_code
        )
        channel = "1" if package.is_business_to_business else "0"
        serial = "".join(
            secrets.choice(string.digits) for _ in range(POLICY_SERIAL_LENGTH)
        )
        return (
            f"{partner}{insurer}{self._settings.policy_category_code}"
            f"{channel}{self._today():%y}{serial}"
        )

    @beartype
    def gateway_token(self) -> str:
        """Opaque URL-safe token correlating an order with gateway callbacks."""
        return secrets.token_urlsafe(32)
