"""Unit tests for reference code and policy number generation."""

import re
from datetime import date
from uuid import uuid4

from policy_lifecycle.core.config import Settings
from policy_lifecycle.models.package import InsurancePackage, SalesChannel
from policy_lifecycle.services.reference_ids import ReferenceIdGenerator

POLICY_NUMBER = re.compile(r"^[A-Z]{2}[A-Z]{2}[A-Z]{2}[01][0-9]{2}[0-9]{10}$")


def make_package(**overrides) -> InsurancePackage:
    values = {"id": uuid4(), "name": "Office Cover", "category_id": 1}
    values.update(overrides)
    return InsurancePackage(**values)


class TestReferenceIdGenerator:
    """Test identifier formats."""

    def setup_method(self):
        self.ids = ReferenceIdGenerator(Settings(), today=lambda: date(2025, 1, 14))

    def test_reference_codes_carry_prefix_and_date(self):
        assert re.fullmatch(r"TIQ-20250114-[A-Z0-9]{6}", self.ids.quotation_reference())
        assert re.fullmatch(r"TIO-20250114-[A-Z0-9]{6}", self.ids.order_reference())
        assert re.fullmatch(r"TIC-20250114-[A-Z0-9]{6}", self.ids.claim_reference())

    def test_prefixes_are_configurable(self):
        ids = ReferenceIdGenerator(
            Settings(quotation_reference_prefix="QT"), today=lambda: date(2025, 1, 14)
        )

        assert ids.quotation_reference().startswith("QT-20250114-")

    def test_policy_number_shape_with_default_codes(self):
        number = self.ids.policy_number(make_package())

        assert len(number) == 19
        assert POLICY_NUMBER.fullmatch(number)
        assert number.startswith("INPRTI025")

    def test_policy_number_uses_package_codes_and_b2b_digit(self):
        package = make_package(
            partner_code="AB", insurance_company_code="XY", channel=SalesChannel.BUSINESS
        )

        number = self.ids.policy_number(package)

        assert number[:9] == "ABXYTI125"
        assert POLICY_NUMBER.fullmatch(number)

    def test_policy_numbers_are_random(self):
        package = make_package()

        numbers = {self.ids.policy_number(package) for _ in range(20)}

        assert len(numbers) > 1

    def test_gateway_tokens_are_url_safe_and_distinct(self):
        first, second = self.ids.gateway_token(), self.ids.gateway_token()

        assert first != second
        assert re.fullmatch(r"[A-Za-z0-9_-]{32,}", first)
