from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

RESOURCE_DIR = Path(__file__).parent / "resources"

_DEFAULT_SENDER_LINES = (
    "Shipping Department",
    "Example Robotics Corporation",
    "100 Industrial Way",
    "Las Vegas, NV 89119",
    "USA",
)
_DEFAULT_HEADER_LINES = (
    "Example Robotics Corporation",
    "100 Industrial Way",
    "Las Vegas, NV 89119",
    "USA",
)
_DEFAULT_CONTACT_LINES = (
    "Tel: +1 (702) 555-0100",
    "Fax: +1 (702) 555-0101",
    "sales@example.com",
    "www.example.com",
)


def _get_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value else None


def _get_lines(name: str) -> Optional[tuple[str, ...]]:
    value = _get_env(name)
    if not value:
        return None
    return tuple(part.strip() for part in value.split("|") if part.strip())


class InvoiceSettings(BaseModel):
    """Everything about the issuing company that ends up on the document."""

    model_config = ConfigDict(frozen=True)

    sender_lines: tuple[str, ...] = _DEFAULT_SENDER_LINES
    header_lines: tuple[str, ...] = _DEFAULT_HEADER_LINES
    contact_lines: tuple[str, ...] = _DEFAULT_CONTACT_LINES
    title: str = "Commercial Invoice"
    origin_city: str = "Las Vegas"
    signer_name: str = "Shipping Department"
    logo_path: Path = Path("commercial_invoice/logo.png")
    signature_path: Path = Path("commercial_invoice/signature.png")

    def resolve_asset(self, path: Path) -> Path:
        return path if path.is_absolute() else RESOURCE_DIR / path

    @property
    def logo_file(self) -> Path:
        return self.resolve_asset(self.logo_path)

    @property
    def signature_file(self) -> Path:
        return self.resolve_asset(self.signature_path)

    @classmethod
    def from_env(cls) -> "InvoiceSettings":
        overrides: dict[str, object] = {}
        for field, env_name in (
            ("sender_lines", "INVOICE_SENDER_LINES"),
            ("header_lines", "INVOICE_HEADER_LINES"),
            ("contact_lines", "INVOICE_CONTACT_LINES"),
        ):
            lines = _get_lines(env_name)
            if lines:
                overrides[field] = lines
        for field, env_name in (
            ("title", "INVOICE_TITLE"),
            ("origin_city", "INVOICE_ORIGIN_CITY"),
            ("signer_name", "INVOICE_SIGNER_NAME"),
            ("logo_path", "INVOICE_LOGO_PATH"),
            ("signature_path", "INVOICE_SIGNATURE_PATH"),
        ):
            value = _get_env(env_name)
            if value:
                overrides[field] = value
        return cls(**overrides)


def allowed_environments() -> set[str]:
    raw = _get_env("INVOICE_ALLOWED_ENVS") or "preview,test,development"
    return {part.strip().lower() for part in raw.split(",") if part.strip()}


def current_environment() -> str:
    return (_get_env("APP_ENV") or "production").lower()
