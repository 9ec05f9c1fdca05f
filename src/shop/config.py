from __future__ import annotations

import os
import re
from dataclasses import dataclass

from src.shop.models import Shop

AUTOFLOW_DOMAIN = os.environ.get("SHOPSYNC_AUTOFLOW_DOMAIN", "")
AUTOFLOW_API_KEY = os.environ.get("SHOPSYNC_AUTOFLOW_API_KEY", "")
AUTOFLOW_API_PASSWORD = os.environ.get("SHOPSYNC_AUTOFLOW_API_PASSWORD", "")

_DEFAULT_AUTOFLOW_SUFFIX = "autotext.me"

_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_PATH_PATTERN = re.compile(r"/.*$")
_TRAILING_PATTERN = re.compile(r"[./]+$")


@dataclass(frozen=True)
class AutoflowConfig:
    domain: str
    api_key: str | None
    api_password: str | None

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}" if self.domain else ""

    @property
    def configured(self) -> bool:
        # AutoFlow Basic auth needs both key and password.
        return bool(self.domain and self.api_key and self.api_password)


def normalize_autoflow_domain(value: str | None) -> str:
    """Reduce a pasted URL or bare subdomain to a host name.

    >>> normalize_autoflow_domain("https://acme.autotext.me/dashboard")
    'acme.autotext.me'
    >>> normalize_autoflow_domain("acme")
    'acme.autotext.me'
    """
    domain = (value or "").strip()
    if not domain:
        return ""
    domain = _SCHEME_PATTERN.sub("", domain)
    domain = _PATH_PATTERN.sub("", domain)
    domain = _TRAILING_PATTERN.sub("", domain)
    if domain and "." not in domain:
        domain = f"{domain}.{_DEFAULT_AUTOFLOW_SUFFIX}"
    return domain


def resolve_autoflow_config(shop: Shop) -> AutoflowConfig:
    """Shop columns win over the process-wide environment fallbacks."""
    return AutoflowConfig(
        domain=normalize_autoflow_domain(shop.autoflow_domain or AUTOFLOW_DOMAIN),
        api_key=shop.autoflow_api_key or AUTOFLOW_API_KEY or None,
        api_password=shop.autoflow_api_password or AUTOFLOW_API_PASSWORD or None,
    )
