"""Tests for the PayPal NVP adapter using httpx's mock transport."""

from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import parse_qs, urlencode

import httpx
import pytest

from subscription_core.core.config import Settings
from subscription_core.domain.errors import GatewayError
from subscription_core.domain.models import GatewayStatus
from subscription_core.infrastructure.billing.paypal import (
    PayPalGatewayFactory,
    PayPalRecurringGateway,
)

API_URL = "https://api-3t.paypal.test/nvp"


class NvpServer:
    """Records NVP requests and replies with canned responses per METHOD."""

    def __init__(self):
        self.requests = []
        self.responses = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.requests.append(params)
        status, body = self.responses.get(params["METHOD"], (200, {"ACK": "Success"}))
        return httpx.Response(status, text=urlencode(body))


@pytest.fixture
def server():
    return NvpServer()


@pytest.fixture
def paypal(server):
    client = httpx.Client(transport=httpx.MockTransport(server))
    yield PayPalRecurringGateway(
        user_id="api-user",
        password="api-pwd",
        signature="api-sig",
        api_url=API_URL,
        checkout_url="https://www.paypal.test/cgi-bin/webscr?cmd=_express-checkout",
        currency="usd",
        client=client,
    )
    client.close()


def test_start_checkout(paypal, server):
    server.responses["SetExpressCheckout"] = (200, {"ACK": "Success", "TOKEN": "EC-123"})

    handle = paypal.start_checkout(
        "https://app.test/return", "https://app.test/cancel", "buyer@example.com",
        Decimal("9.72"), "Basic for account Acme (9.72 USD)",
    )

    assert handle.token == "EC-123"
    assert handle.redirect_url.endswith("cmd=_express-checkout&token=EC-123")
    request = server.requests[0]
    assert request["USER"] == "api-user"
    assert request["SIGNATURE"] == "api-sig"
    assert request["MAXAMT"] == "9.72"
    assert request["CURRENCYCODE"] == "USD"
    assert request["L_BILLINGTYPE0"] == "RecurringPayments"
    assert request["L_BILLINGAGREEMENTDESCRIPTION0"] == "Basic for account Acme (9.72 USD)"


def test_create_recurring(paypal, server):
    server.responses["CreateRecurringPaymentsProfile"] = (
        200,
        {"ACK": "Success", "PROFILEID": "I-ABC", "PROFILESTATUS": "ActiveProfile"},
    )

    profile = paypal.create_recurring(
        "EC-123",
        datetime(2026, 2, 1, 8, 30, tzinfo=timezone.utc),
        Decimal("29"),
        Decimal("2.32"),
        "Pro for account Acme",
    )

    assert profile.profile_id == "I-ABC"
    assert profile.status is GatewayStatus.COMPLETE
    request = server.requests[0]
    assert request["TOKEN"] == "EC-123"
    assert request["PROFILESTARTDATE"] == "2026-02-01T08:30:00Z"
    assert request["BILLINGPERIOD"] == "Month"
    assert request["BILLINGFREQUENCY"] == "1"
    assert request["AMT"] == "29.00"
    assert request["TAXAMT"] == "2.32"


def test_recurring_details(paypal, server):
    server.responses["GetRecurringPaymentsProfileDetails"] = (
        200,
        {
            "ACK": "Success",
            "STATUS": "Active",
            "NEXTBILLINGDATE": "2026-02-15T10:00:00Z",
            "LASTPAYMENTDATE": "2026-01-15T10:00:00Z",
        },
    )

    details = paypal.recurring_details("I-ABC")

    assert details.next_billing_date == datetime(2026, 2, 15, 10, tzinfo=timezone.utc)
    assert details.last_payment_date == datetime(2026, 1, 15, 10, tzinfo=timezone.utc)
    assert details.status is GatewayStatus.COMPLETE


def test_recurring_details_without_payments(paypal, server):
    server.responses["GetRecurringPaymentsProfileDetails"] = (
        200,
        {"ACK": "Success", "STATUS": "Pending"},
    )

    details = paypal.recurring_details("I-ABC")

    assert details.next_billing_date is None
    assert details.last_payment_date is None
    assert details.status is GatewayStatus.PENDING


def test_cancel_recurring(paypal, server):
    paypal.cancel_recurring("I-ABC", "update")

    request = server.requests[0]
    assert request["METHOD"] == "ManageRecurringPaymentsProfileStatus"
    assert request["ACTION"] == "Cancel"
    assert request["NOTE"] == "update"


def test_failure_ack_raises(paypal, server):
    server.responses["ManageRecurringPaymentsProfileStatus"] = (
        200,
        {
            "ACK": "Failure",
            "L_ERRORCODE0": "11556",
            "L_LONGMESSAGE0": "Invalid profile status for cancel action",
        },
    )

    with pytest.raises(GatewayError) as exc_info:
        paypal.cancel_recurring("I-ABC", "cancel")

    assert exc_info.value.gateway_code == "11556"
    assert "Invalid profile status" in exc_info.value.message


def test_http_error_raises(paypal, server):
    server.responses["SetExpressCheckout"] = (503, {})

    with pytest.raises(GatewayError):
        paypal.start_checkout("r", "c", "e@example.com", Decimal("1"), "desc")


def test_missing_token_raises(paypal, server):
    with pytest.raises(GatewayError):
        paypal.start_checkout("r", "c", "e@example.com", Decimal("1"), "desc")


def test_zero_decimal_currency(server):
    with httpx.Client(transport=httpx.MockTransport(server)) as client:
        gateway = PayPalRecurringGateway("u", "p", "s", API_URL, "https://paypal.test/", "JPY", client)
        gateway.cancel_recurring("I-1", "cancel")
        server.responses["CreateRecurringPaymentsProfile"] = (
            200,
            {"ACK": "Success", "PROFILEID": "I-2", "PROFILESTATUS": "PendingProfile"},
        )
        profile = gateway.create_recurring(
            "EC-1", datetime(2026, 2, 1, tzinfo=timezone.utc), Decimal("1000"), Decimal("80"), "d"
        )

    assert profile.status is GatewayStatus.PENDING
    assert server.requests[-1]["AMT"] == "1000"
    assert server.requests[-1]["CURRENCYCODE"] == "JPY"


class TestFactory:
    def test_requires_credentials(self, monkeypatch):
        for key in ("PAYPAL_API_USER_ID", "PAYPAL_API_PASSWORD", "PAYPAL_API_SIGNATURE"):
            monkeypatch.delenv(key, raising=False)
        factory = PayPalGatewayFactory(Settings())

        with pytest.raises(RuntimeError, match="PAYPAL_API_USER_ID"):
            factory("USD")

    def test_builds_gateway_per_currency(self, monkeypatch, server):
        monkeypatch.setenv("PAYPAL_API_USER_ID", "api-user")
        monkeypatch.setenv("PAYPAL_API_PASSWORD", "api-pwd")
        monkeypatch.setenv("PAYPAL_API_SIGNATURE", "api-sig")
        client = httpx.Client(transport=httpx.MockTransport(server))
        factory = PayPalGatewayFactory(Settings(), client=client)

        gateway = factory("eur")
        gateway.cancel_recurring("I-ABC", "cancel")

        assert gateway.currency == "EUR"
        assert server.requests[0]["PWD"] == "api-pwd"
        factory.close()
