"""PayPal NVP recurring payments integration."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional
from urllib.parse import parse_qs

import httpx
from dateutil import parser as date_parser

from ...core.config import Settings
from ...domain.errors import GatewayError
from ...domain.models import CheckoutHandle, GatewayStatus, RecurringDetails, RecurringProfile

logger = logging.getLogger(__name__)

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "HUF", "TWD"})
SUCCESS_ACKS = frozenset({"Success", "SuccessWithWarning"})


class PayPalRecurringGateway:
    """Recurring billing gateway speaking PayPal's NVP API for one currency."""

    def __init__(
        self,
        user_id: str,
        password: str,
        signature: str,
        api_url: str,
        checkout_url: str,
        currency: str,
        client: httpx.Client,
        api_version: str = "65.1",
    ) -> None:
        self._credentials = {
            "USER": user_id,
            "PWD": password,
            "SIGNATURE": signature,
            "VERSION": api_version,
        }
        self._api_url = api_url
        self._checkout_url = checkout_url
        self._currency = currency.upper()
        self._client = client

    @property
    def currency(self) -> str:
        return self._currency

    def start_checkout(
        self,
        return_url: str,
        cancel_url: str,
        email: str,
        amount: Decimal,
        description: str,
    ) -> CheckoutHandle:
        response = self._call(
            "SetExpressCheckout",
            {
                "RETURNURL": return_url,
                "CANCELURL": cancel_url,
                "EMAIL": email,
                "AMT": self._format_amount(Decimal("0")),
                "MAXAMT": self._format_amount(amount),
                "CURRENCYCODE": self._currency,
                "NOSHIPPING": "1",
                "L_BILLINGTYPE0": "RecurringPayments",
                "L_BILLINGAGREEMENTDESCRIPTION0": description,
            },
        )
        token = response.get("TOKEN")
        if not token:
            raise GatewayError("PayPal did not return a checkout token", details=response)
        separator = "&" if "?" in self._checkout_url else "?"
        return CheckoutHandle(token=token, redirect_url=f"{self._checkout_url}{separator}token={token}")

    def create_recurring(
        self,
        token: str,
        billing_starts_at: datetime,
        price: Decimal,
        price_tax: Decimal,
        description: str,
    ) -> RecurringProfile:
        response = self._call(
            "CreateRecurringPaymentsProfile",
            {
                "TOKEN": token,
                "PROFILESTARTDATE": self._format_date(billing_starts_at),
                "DESC": description,
                "BILLINGPERIOD": "Month",
                "BILLINGFREQUENCY": "1",
                "AMT": self._format_amount(price),
                "TAXAMT": self._format_amount(price_tax),
                "CURRENCYCODE": self._currency,
            },
        )
        profile_id = response.get("PROFILEID")
        if not profile_id:
            raise GatewayError("PayPal did not return a recurring profile id", details=response)
        status = GatewayStatus.from_gateway(response.get("PROFILESTATUS"))
        logger.info("Created PayPal recurring profile %s (%s)", profile_id, status.value)
        return RecurringProfile(profile_id=profile_id, status=status)

    def recurring_details(self, profile_id: str) -> RecurringDetails:
        response = self._call("GetRecurringPaymentsProfileDetails", {"PROFILEID": profile_id})
        return RecurringDetails(
            next_billing_date=self._parse_date(response.get("NEXTBILLINGDATE")),
            last_payment_date=self._parse_date(response.get("LASTPAYMENTDATE")),
            status=GatewayStatus.from_gateway(response.get("STATUS")),
        )

    def cancel_recurring(self, profile_id: str, reason: str) -> None:
        self._call(
            "ManageRecurringPaymentsProfileStatus",
            {"PROFILEID": profile_id, "ACTION": "Cancel", "NOTE": str(reason)},
        )
        logger.info("Canceled PayPal recurring profile %s (%s)", profile_id, reason)

    # ------------------------------------------------------------------
    def _call(self, method: str, params: Dict[str, str]) -> Dict[str, str]:
        payload = {**self._credentials, "METHOD": method, **params}
        logger.debug("PayPal NVP call %s", method)
        try:
            response = self._client.post(self._api_url, data=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("PayPal %s request failed: %s", method, exc)
            raise GatewayError(f"PayPal {method} request failed: {exc}") from exc

        result = {key: values[0] for key, values in parse_qs(response.text).items()}
        ack = result.get("ACK")
        if ack not in SUCCESS_ACKS:
            code = result.get("L_ERRORCODE0")
            message = result.get("L_LONGMESSAGE0") or result.get("L_SHORTMESSAGE0") or "unknown error"
            logger.warning("PayPal %s failed with ACK=%s code=%s: %s", method, ack, code, message)
            raise GatewayError(f"PayPal {method} failed: {message}", gateway_code=code, details=result)
        return result

    def _format_amount(self, amount: Decimal) -> str:
        if self._currency in ZERO_DECIMAL_CURRENCIES:
            return f"{amount:.0f}"
        return f"{amount:.2f}"

    @staticmethod
    def _format_date(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        return date_parser.isoparse(value)


class PayPalGatewayFactory:
    """Builds PayPal gateways per currency from settings, sharing one HTTP client."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self._settings = settings
        self._client = client

    def __call__(self, currency: str) -> PayPalRecurringGateway:
        user_id, password, signature = self._settings.require_paypal_credentials()
        return PayPalRecurringGateway(
            user_id=user_id,
            password=password,
            signature=signature,
            api_url=self._settings.paypal_nvp_api_url,
            checkout_url=self._settings.paypal_checkout_url,
            currency=currency,
            client=self._get_client(),
            api_version=self._settings.paypal_api_version,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=httpx.Timeout(self._settings.paypal_timeout_seconds))
        return self._client
