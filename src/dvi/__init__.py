import httpx

from src.base.cache import TtlCache
from src.dvi.autoflow import AutoflowDviClient
from src.dvi.interface import DviFetchError, DviResult, DviSource
from src.shop.config import AutoflowConfig

_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def _make_client(config: AutoflowConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        auth=httpx.BasicAuth(str(config.api_key), str(config.api_password)),
        timeout=_TIMEOUT,
        follow_redirects=True,
    )


def create_dvi_source(
    config: AutoflowConfig, cache: TtlCache[DviResult] | None = None
) -> DviSource:
    """Create a DVI source for one shop with a fresh HTTP client."""
    if not config.configured:
        raise DviFetchError("AutoFlow not configured for this shop.")
    return AutoflowDviClient.create(_make_client(config), config, cache)
