import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

PAYPAL_SANDBOX_NVP_URL = "https://api-3t.sandbox.paypal.com/nvp"
PAYPAL_SANDBOX_CHECKOUT_URL = "https://www.sandbox.paypal.com/cgi-bin/webscr?cmd=_express-checkout"


class Settings:
    """Centralised configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/subscriptions.db")).resolve()
        self.plan_catalog_path = Path(os.getenv("PLAN_CATALOG_PATH", "config/plans.json")).resolve()
        self.paypal_api_user_id = os.getenv("PAYPAL_API_USER_ID")
        self.paypal_api_password = os.getenv("PAYPAL_API_PASSWORD")
        self.paypal_api_signature = os.getenv("PAYPAL_API_SIGNATURE")
        self.paypal_nvp_api_url = os.getenv("PAYPAL_NVP_API_URL", PAYPAL_SANDBOX_NVP_URL)
        self.paypal_checkout_url = os.getenv("PAYPAL_CHECKOUT_URL", PAYPAL_SANDBOX_CHECKOUT_URL)
        self.paypal_api_version = os.getenv("PAYPAL_API_VERSION", "65.1")
        self.paypal_timeout_seconds = self._get_int("PAYPAL_TIMEOUT_SECONDS", default=30)
        self.description_template = os.getenv(
            "SUBSCRIPTION_DESCRIPTION_TEMPLATE", "{plan_name} for {subject_desc} ({price})"
        )
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def paypal_configured(self) -> bool:
        return bool(
            self.paypal_api_user_id and self.paypal_api_password and self.paypal_api_signature
        )

    def require_paypal_credentials(self) -> Tuple[str, str, str]:
        missing = [
            key
            for key, value in (
                ("PAYPAL_API_USER_ID", self.paypal_api_user_id),
                ("PAYPAL_API_PASSWORD", self.paypal_api_password),
                ("PAYPAL_API_SIGNATURE", self.paypal_api_signature),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(f"Missing required environment variable: {', '.join(missing)}")
        return self.paypal_api_user_id, self.paypal_api_password, self.paypal_api_signature  # type: ignore[return-value]

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
