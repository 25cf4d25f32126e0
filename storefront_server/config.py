"""Settings loaded from the environment."""

import os
from decimal import Decimal
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from .models import AuthCredentials


class StorefrontSettings(BaseModel):
    """Runtime configuration."""

    api_url: str = Field(default="http://localhost:5000/api", description="Storefront API base URL")
    token: Optional[str] = Field(None, description="Bearer token")
    email: Optional[str] = None
    password: Optional[str] = None
    session_file: Optional[str] = Field(None, description="Session file path")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    free_shipping_threshold: Decimal = Field(default=Decimal("50.00"), ge=0)
    shipping_fee: Decimal = Field(default=Decimal("9.99"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StorefrontSettings":
        """
        Build settings from STOREFRONT_* environment variables.

        Unset variables keep their defaults.
        """
        if environ is None:
            environ = os.environ

        mapping = {
            "api_url": "STOREFRONT_API_URL",
            "token": "STOREFRONT_TOKEN",
            "email": "STOREFRONT_EMAIL",
            "password": "STOREFRONT_PASSWORD",
            "session_file": "STOREFRONT_SESSION_FILE",
            "timeout": "STOREFRONT_TIMEOUT",
            "free_shipping_threshold": "STOREFRONT_FREE_SHIPPING_THRESHOLD",
            "shipping_fee": "STOREFRONT_SHIPPING_FEE",
            "tax_rate": "STOREFRONT_TAX_RATE",
        }
        values = {field: environ[var] for field, var in mapping.items() if environ.get(var)}
        return cls(**values)

    @property
    def credentials(self) -> Optional[AuthCredentials]:
        if self.email and self.password:
            return AuthCredentials(email=self.email, password=self.password)
        return None
