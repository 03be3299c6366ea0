import asyncio
import logging
import ssl
import time

import aiohttp
from aiohttp_socks import ProxyConnectionError, ProxyConnector, ProxyError, ProxyTimeoutError, ProxyType

from .proxies import ProxyDescriptor, ProxyKind
from .results import FetchErrorKind, FetchOutcome
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG

logger = logging.getLogger(__name__)

DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

# Proxy kinds that go through an aiohttp_socks connector instead of aiohttp's proxy=
_CONNECTOR_PROXY_TYPES = {
    ProxyKind.HTTPS: ProxyType.HTTP,
    ProxyKind.SOCKS4: ProxyType.SOCKS4,
    ProxyKind.SOCKS5: ProxyType.SOCKS5,
}


def build_connector(proxy: ProxyDescriptor | None) -> aiohttp.BaseConnector | None:
    """
    Connector for one fetch.

    - no proxy / plain HTTP proxy: aiohttp's default TCP connector
    - HTTP tunnel, SOCKS4, SOCKS5: aiohttp_socks.ProxyConnector
    """
    if proxy is None or proxy.kind is ProxyKind.HTTP:
        return None

    kwargs = {}
    if proxy.has_credentials:
        kwargs = {"username": proxy.username, "password": proxy.password}
    return ProxyConnector(
        proxy_type=_CONNECTOR_PROXY_TYPES[proxy.kind],
        host=proxy.host,
        port=proxy.port,
        rdns=True,
        **kwargs,
    )


def classify_error(exc: BaseException) -> FetchErrorKind:
    # Certificate errors subclass the connection errors, check them first.
    if isinstance(exc, (aiohttp.ClientConnectorCertificateError, ssl.SSLCertVerificationError)):
        return FetchErrorKind.TLS
    # TimeoutError is an OSError on current interpreters.
    if isinstance(exc, (asyncio.TimeoutError, ProxyTimeoutError)):
        return FetchErrorKind.TIMEOUT
    return FetchErrorKind.CONNECTION


class HttpFetcher:
    """
    Single-GET fetcher built on aiohttp.

    - Never follows redirects; a 3xx comes back as-is
    - Routes through an optional proxy (http, http tunnel, socks4, socks5)
    - Optional insecure mode for the one TLS retry the checker may make
    - Stateless: retries and failover are decided by the caller
    """

    def __init__(self, config: CheckConfig | None = None):
        self.config = config or DEFAULT_CHECK_CONFIG

    async def fetch(
        self,
        url: str,
        proxy: ProxyDescriptor | None = None,
        *,
        skip_tls_verify: bool = False,
        timeout_s: float | None = None,
    ) -> FetchOutcome:
        """
        Fetch a URL once.

        Returns:
            FetchOutcome with status, headers, decoded body and final URL,
            or with error_kind/error set if the request failed.
        """
        timeout = aiohttp.ClientTimeout(total=timeout_s or self.config.request_timeout_s)
        headers = {**DEFAULT_HTTP_HEADERS, "User-Agent": self.config.user_agent}
        proxy_label = proxy.label if proxy else None
        proxy_url = proxy.url if (proxy and proxy.kind is ProxyKind.HTTP) else None

        t0 = time.perf_counter()
        try:
            connector = build_connector(proxy)
            async with aiohttp.ClientSession(connector=connector, timeout=timeout, headers=headers) as session:
                async with session.get(
                    url,
                    proxy=proxy_url,
                    allow_redirects=False,
                    ssl=False if skip_tls_verify else True,
                ) as resp:
                    body = await resp.text(errors="replace")
                    return FetchOutcome(
                        url=url,
                        status=resp.status,
                        headers=resp.headers.copy(),
                        body=body,
                        final_url=str(resp.url),
                        elapsed_s=time.perf_counter() - t0,
                        proxy_label=proxy_label,
                    )
        except (aiohttp.ClientError, ProxyError, ProxyConnectionError, OSError, asyncio.TimeoutError, ValueError) as e:
            kind = classify_error(e)
            logger.debug("GET %s via %s failed (%s): %r", url, proxy_label or "direct", kind.value, e)
            return FetchOutcome(
                url=url,
                elapsed_s=time.perf_counter() - t0,
                error_kind=kind,
                error=str(e) or type(e).__name__,
                proxy_label=proxy_label,
            )
