# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Linear-unit premium and charge calculations."""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from beartype import beartype

from ..core.errors import ValidationError
from ..core.result_types import Err, Ok, Result
from ..models.order import ChargeBreakdown

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


@beartype
def _to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class PremiumCalculator:
    """Stateless premium arithmetic."""

    @staticmethod
    @beartype
    def compute_premium(
        coverage_amount: Decimal,
        unit_size: Decimal,
        rate_per_unit: Decimal,
    ) -> Result[Decimal, ValidationError]:
        """Premium for a coverage amount.

        Every started unit of coverage is charged in full:
        ``ceil(coverage_amount / unit_size) * rate_per_unit``.

        Args:
            coverage_amount: Requested coverage
            unit_size: Coverage carried by one premium unit
            rate_per_unit: Premium charged per unit

        Returns:
            Result containing the premium or a validation error
        """
        if coverage_amount <= 0:
            return Err(
                ValidationError.for_field(
                    "coverage_amount", "Coverage amount must be positive"
                )
            )
        if unit_size <= 0 or rate_per_unit <= 0:
            return Err(
                ValidationError.for_field(
                    "premium_schedule", "Unit size and rate per unit must be positive"
                )
            )

        units = (coverage_amount / unit_size).to_integral_value(rounding=ROUND_CEILING)
        return Ok(_to_cents(units * rate_per_unit))

    @staticmethod
    @beartype
    def compute_charges(
        premium: Decimal,
        discount_rate_percent: Decimal,
        vat_rate_percent: Decimal,
    ) -> ChargeBreakdown:
        """Split a premium into discount, VAT, net and final amounts.

        Discount and VAT are both taken on the undiscounted premium. The
        administrative net subtracts VAT; the customer-facing final premium
        adds it.
        """
        premium = _to_cents(premium)
        discount = _to_cents(premium * discount_rate_percent / HUNDRED)
        vat = _to_cents(premium * vat_rate_percent / HUNDRED)
        return ChargeBreakdown(
            premium=premium,
            discount=discount,
            vat=vat,
            net=premium - discount - vat,
            final_premium=premium - discount + vat,
        )
