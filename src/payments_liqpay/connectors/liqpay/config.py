"""Merchant configuration for the LiqPay provider."""

import os
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class PayType(str, Enum):
    """Payment methods LiqPay can offer on its checkout page."""
    CARD = "card"
    PRIVAT24 = "privat24"
    LIQPAY = "liqpay"
    INVOICE = "invoice"
    CASH = "cash"


CURRENCIES = {
    "UAH": "Hryvnia",
    "EUR": "Euro",
    "USD": "Dollar",
}

_TRUTHY = {"1", "true", "yes", "on"}


class LiqPayConfig(BaseModel):
    """Immutable per-deployment settings, loaded once at construction."""
    model_config = ConfigDict(frozen=True)

    public_key: str = Field(min_length=1, title="Public key")
    private_key: SecretStr = Field(title="Private key")
    currency: str = Field("UAH", title="Currency", json_schema_extra={"enum": list(CURRENCIES)})
    paytypes: Optional[str] = Field(
        None,
        title="Payment methods",
        description="Comma-joined subset of: " + ", ".join(p.value for p in PayType),
    )
    sandbox: bool = Field(False, title="Sandbox mode")
    callback_url: str = Field("", title="Server callback URL")

    @field_validator("private_key")
    @classmethod
    def private_key_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("private_key must not be empty")
        return v

    @field_validator("currency")
    @classmethod
    def currency_supported(cls, v: str) -> str:
        v = v.upper()
        if v not in CURRENCIES:
            raise ValueError(f"currency must be one of {', '.join(CURRENCIES)}")
        return v

    @field_validator("paytypes", mode="before")
    @classmethod
    def normalize_paytypes(cls, v: Union[None, str, List[str]]) -> Optional[str]:
        if v is None:
            return None
        items = v.split(",") if isinstance(v, str) else list(v)
        values = []
        for item in items:
            item = str(getattr(item, "value", item)).strip().lower()
            if not item:
                continue
            PayType(item)  # raises ValueError for unknown methods
            if item not in values:
                values.append(item)
        return ",".join(values) or None

    @property
    def secret(self) -> str:
        return self.private_key.get_secret_value()

    def is_valid(self) -> bool:
        return bool(self.public_key) and bool(self.secret)

    @classmethod
    def from_env(cls, **overrides: Any) -> "LiqPayConfig":
        """Build the configuration from ``LIQPAY_*`` environment variables.

        Raises:
            pydantic.ValidationError: If the keys are missing or values are invalid.
        """
        values: Dict[str, Any] = {
            "public_key": os.getenv("LIQPAY_PUBLIC_KEY", ""),
            "private_key": os.getenv("LIQPAY_PRIVATE_KEY", ""),
            "currency": os.getenv("LIQPAY_CURRENCY", "UAH"),
            "paytypes": os.getenv("LIQPAY_PAYTYPES") or None,
            "sandbox": os.getenv("LIQPAY_SANDBOX", "").strip().lower() in _TRUTHY,
            "callback_url": os.getenv("LIQPAY_CALLBACK_URL", ""),
        }
        values.update(overrides)
        return cls(**values)


def config_schema() -> Dict[str, Any]:
    """JSON schema describing the settings a host must collect for this provider."""
    return LiqPayConfig.model_json_schema()
