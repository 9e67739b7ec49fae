"""Unit tests for lifecycle models."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pydantic
import pytest

from policy_lifecycle.models.claim import ClaimSubmission
from policy_lifecycle.models.context import RequestContext
from policy_lifecycle.models.order import Order, OrderStatus, PaymentState
from policy_lifecycle.models.package import InsurancePackage, SalesChannel
from policy_lifecycle.models.payment import GatewayCallback, extract_payment_ref_id

NOW = datetime(2025, 1, 14, 9, 0, tzinfo=timezone.utc)


def make_order(**overrides: Any) -> Order:
    data: dict[str, Any] = {
        "id": uuid4(),
        "reference_code": "TIO-20250114-AB12CD",
        "quotation_id": uuid4(),
        "package_id": uuid4(),
        "category_id": 3,
        "owner_id": uuid4(),
        "email": "owner@example.com",
        "phone": "01711000000",
        "address": {
            "address_line": "12 Lake Road",
            "city": "Dhaka",
            "state": "Dhaka",
            "postal_code": "1212",
        },
        "property_type": "home",
        "coverage_amount": Decimal("200000"),
        "base_premium": Decimal("1000"),
        "discount_amount": Decimal("50"),
        "vat_amount": Decimal("150"),
        "net_amount": Decimal("800"),
        "final_premium": Decimal("1100"),
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return Order(**data)


class TestOrder:
    """Test order invariants and derived state."""

    def test_new_order_has_no_payment(self):
        order = make_order()

        assert order.payment_state == PaymentState.NOT_STARTED
        assert not order.has_policy
        assert order.remaining_coverage == Decimal("200000")

    def test_awaiting_callback(self):
        order = make_order(gateway_token="abc")

        assert order.payment_state == PaymentState.AWAITING_CALLBACK

    def test_declined(self):
        order = make_order(
            gateway_token="abc", gateway_status="Failed", status=OrderStatus.REJECTED
        )

        assert order.payment_state == PaymentState.DECLINED

    def test_settled(self):
        order = make_order(
            gateway_token="abc",
            gateway_status="Complete",
            policy_number="INPRTI0250123456789",
            policy_start_date=date(2025, 1, 14),
            policy_end_date=date(2026, 1, 14),
            status=OrderStatus.COMPLETED,
        )

        assert order.payment_state == PaymentState.SETTLED
        assert order.charges.final_premium == Decimal("1100")

    def test_dates_require_policy_number(self):
        with pytest.raises(pydantic.ValidationError, match="policy number"):
            make_order(policy_start_date=date(2025, 1, 14))

    def test_policy_number_requires_dates(self):
        with pytest.raises(pydantic.ValidationError, match="start and end dates"):
            make_order(policy_number="INPRTI0250123456789")

    def test_end_date_after_start(self):
        with pytest.raises(pydantic.ValidationError, match="after start date"):
            make_order(
                policy_number="INPRTI0250123456789",
                policy_start_date=date(2025, 1, 14),
                policy_end_date=date(2025, 1, 14),
            )

    def test_policy_number_length(self):
        with pytest.raises(pydantic.ValidationError):
            make_order(
                policy_number="INPRTI025",
                policy_start_date=date(2025, 1, 14),
                policy_end_date=date(2026, 1, 14),
            )

    def test_orders_are_immutable(self):
        order = make_order()

        with pytest.raises(pydantic.ValidationError):
            order.status = OrderStatus.COMPLETED


class TestGatewayCallback:
    """Test gateway payload parsing."""

    def test_from_gateway_payload(self):
        callback = GatewayCallback.from_gateway_payload(
            {
                "pgw_shuffle_id": "tok-1",
                "pgw_status": "Complete",
                "pgw_response": "https://pay.example/ok?payment_ref_id=PR-1",
                "pgw_name": "bkash",
                "is_api": "true",
            }
        )

        assert callback.correlation_token == "tok-1"
        assert callback.is_success
        assert not callback.is_failure
        assert callback.gateway_name == "bkash"
        assert callback.is_machine_caller is True

    def test_is_api_defaults_to_browser(self):
        callback = GatewayCallback.from_gateway_payload(
            {"pgw_shuffle_id": "tok-1", "pgw_status": "Failed", "is_api": "False"}
        )

        assert callback.is_machine_caller is False
        assert callback.is_failure

    def test_message_used_when_status_missing(self):
        callback = GatewayCallback.from_gateway_payload(
            {"pgw_shuffle_id": "tok-1", "pgw_msg": "Cancelled"}
        )

        assert callback.gateway_status == "Cancelled"
        assert callback.is_failure

    def test_unknown_status_is_neither(self):
        callback = GatewayCallback(correlation_token="tok", gateway_status="Processing")

        assert not callback.is_success
        assert not callback.is_failure

    def test_missing_token_is_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            GatewayCallback.from_gateway_payload({"pgw_status": "Complete"})


class TestExtractPaymentRefId:
    """Test payment reference extraction."""

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ("https://pay.example/done?payment_ref_id=PR-42&x=1", "PR-42"),
            ("https://pay.example/done?status=ok", None),
            ("https://pay.example/done", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, payload, expected):
        assert extract_payment_ref_id(payload) == expected


class TestRequestContext:
    """Test caller context."""

    def test_owner_check(self):
        user_id = uuid4()
        ctx = RequestContext(user_id=user_id, brand="Instasure")

        assert ctx.is_authenticated
        assert ctx.owns(user_id)
        assert not ctx.owns(uuid4())
        assert not ctx.owns(None)

    def test_anonymous_owns_nothing(self):
        ctx = RequestContext()

        assert not ctx.is_authenticated
        assert not ctx.owns(None)

    def test_brand_defaults_from_settings(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_BRAND", "Partner Brand")

        assert RequestContext().brand == "Partner Brand"


class TestClaimSubmission:
    """Test claim form parsing."""

    def test_yes_no_flags(self):
        submission = ClaimSubmission.model_validate(
            {
                "incident_date": "2025-03-02",
                "incident_time": "22:15",
                "authorities_notified": "yes",
                "police_report_filed": "no",
                "claimed_amount": "5000",
                "is_habitable": "no",
                "emergency_measures_taken": "yes",
                "measures_description": "Switched off mains",
            }
        )

        assert submission.authorities_notified is True
        assert submission.police_report_filed is False
        assert submission.is_habitable is False
        assert submission.emergency_measures_taken is True
        assert submission.terms_accepted is False
        assert submission.incident_location == ""

    def test_amount_precision(self):
        with pytest.raises(pydantic.ValidationError):
            ClaimSubmission.model_validate(
                {
                    "incident_date": "2025-03-02",
                    "incident_time": "22:15",
                    "authorities_notified": "no",
                    "police_report_filed": "no",
                    "claimed_amount": "10.555",
                    "is_habitable": "yes",
                    "emergency_measures_taken": "no",
                }
            )


def test_business_package():
    package = InsurancePackage(
        id=uuid4(), name="SME Cover", category_id=4, channel=SalesChannel.BUSINESS
    )

    assert package.is_business_to_business
    assert package.vat_rate_percent == Decimal("0")
