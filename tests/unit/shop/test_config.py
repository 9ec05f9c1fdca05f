from unittest.mock import patch

import pytest

from src.shop.config import (
    AutoflowConfig,
    normalize_autoflow_domain,
    resolve_autoflow_config,
)
from src.shop.models import Shop


class TestNormalizeAutoflowDomain:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("acme", "acme.autotext.me"),
            ("acme.autotext.me", "acme.autotext.me"),
            ("https://acme.autotext.me/dashboard/", "acme.autotext.me"),
            ("HTTP://shop.example.com.", "shop.example.com"),
            ("  ", ""),
            (None, ""),
        ],
    )
    def test_normalizes(self, value: str | None, expected: str) -> None:
        assert normalize_autoflow_domain(value) == expected


class TestAutoflowConfig:
    def test_configured_requires_all_credentials(self) -> None:
        assert AutoflowConfig("acme.autotext.me", "key", "pw").configured
        assert not AutoflowConfig("acme.autotext.me", "key", None).configured
        assert not AutoflowConfig("", "key", "pw").configured

    def test_base_url(self) -> None:
        config = AutoflowConfig("acme.autotext.me", "key", "pw")

        assert config.base_url == "https://acme.autotext.me"


class TestResolveAutoflowConfig:
    def test_shop_columns_win(self) -> None:
        shop = Shop(
            name="A",
            webhook_token="t",
            autoflow_domain="acme",
            autoflow_api_key="shop-key",
            autoflow_api_password="shop-pw",
        )

        with patch("src.shop.config.AUTOFLOW_API_KEY", "env-key"):
            config = resolve_autoflow_config(shop)

        assert config == AutoflowConfig("acme.autotext.me", "shop-key", "shop-pw")

    def test_env_fallback(self) -> None:
        shop = Shop(name="A", webhook_token="t")

        with (
            patch("src.shop.config.AUTOFLOW_DOMAIN", "https://env.autotext.me"),
            patch("src.shop.config.AUTOFLOW_API_KEY", "env-key"),
            patch("src.shop.config.AUTOFLOW_API_PASSWORD", "env-pw"),
        ):
            config = resolve_autoflow_config(shop)

        assert config == AutoflowConfig("env.autotext.me", "env-key", "env-pw")

    def test_unconfigured(self) -> None:
        shop = Shop(name="A", webhook_token="t")

        with (
            patch("src.shop.config.AUTOFLOW_DOMAIN", ""),
            patch("src.shop.config.AUTOFLOW_API_KEY", ""),
            patch("src.shop.config.AUTOFLOW_API_PASSWORD", ""),
        ):
            config = resolve_autoflow_config(shop)

        assert not config.configured
        assert config.api_key is None
