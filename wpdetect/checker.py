"""
Per-domain check pipeline and the bounded batch runner around it.

One domain goes through:
    validate -> direct fetch -> (on block status) proxy failover -> classify

Each step appends its non-fatal findings to the result's `errors`; no domain
can abort the batch.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from .classifier import classify
from .http_fetcher import HttpFetcher
from .policy import redirect_target, response_warnings, should_retry_insecure, should_use_proxies
from .proxies import ProxyDescriptor, ProxyPool
from .results import DomainResult, FetchOutcome
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG
from .utils import format_duration, host_of, normalize_url
from .validator import has_dns_record, is_valid_domain

logger = logging.getLogger(__name__)

Resolver = Callable[[str, float], Awaitable[bool]]


class Fetcher(Protocol):
    async def fetch(
        self,
        url: str,
        proxy: ProxyDescriptor | None = None,
        *,
        skip_tls_verify: bool = False,
    ) -> FetchOutcome: ...


class DomainChecker:
    """
    Runs the check state machine for single domains, sharing one proxy pool
    between all of them.
    """

    def __init__(
        self,
        config: CheckConfig | None = None,
        *,
        pool: ProxyPool | None = None,
        fetcher: Fetcher | None = None,
        resolver: Resolver | None = None,
    ):
        self.config = config or DEFAULT_CHECK_CONFIG
        self.pool = pool if pool is not None else ProxyPool([])
        self.fetcher = fetcher or HttpFetcher(self.config)
        self.resolver = resolver or has_dns_record

    async def check(self, domain: str) -> DomainResult:
        result = DomainResult(domain=domain)
        cfg = self.config

        host = host_of(domain)
        if not is_valid_domain(host):
            result.errors.append("invalid domain structure")
            return result
        result.domain_is_valid = True

        if not await self.resolver(host, cfg.dns_timeout_s):
            result.errors.append("domain not registered")
            return result
        result.domain_has_dns_record = True

        url = normalize_url(domain)
        outcome = await self._fetch(url, None, result.errors)
        if not outcome.ok:
            result.response_time = format_duration(outcome.elapsed_s)
            result.errors.append(f"{outcome.error_kind.value} error: {outcome.error}")
            return result

        if should_use_proxies(outcome, cfg):
            logger.info("%s answered %d, retrying through proxies", url, outcome.status)
            proxied = await self._fetch_via_proxies(url, result.errors)
            if proxied is None:
                result.status_code = cfg.block_status
                result.final_url = outcome.final_url
                result.response_time = format_duration(outcome.elapsed_s)
                return result
            outcome = proxied
            result.proxy_used = proxied.proxy_label

        self._adopt(result, outcome)
        return result

    async def _fetch(self, url: str, proxy: ProxyDescriptor | None, errors: list[str]) -> FetchOutcome:
        """One fetch plus at most one insecure retry after a certificate failure."""
        outcome = await self.fetcher.fetch(url, proxy)
        if should_retry_insecure(outcome):
            errors.append(f"SSL error: {outcome.error}")
            logger.info("Certificate check failed for %s, retrying without verification", url)
            outcome = await self.fetcher.fetch(url, proxy, skip_tls_verify=True)
        return outcome

    async def _fetch_via_proxies(self, url: str, errors: list[str]) -> FetchOutcome | None:
        """
        Try active proxies in file order until one yields a response.

        A proxy that fails at the connection level is deactivated before
        moving on. Returns None when no proxy produced a response.
        """
        if self.pool.active_count == 0:
            errors.append("no proxies available")
            return None

        index = -1
        picked = self.pool.next(index)
        while picked is not None:
            index, proxy = picked
            logger.debug("GET %s via proxy %s", url, proxy.label)
            outcome = await self._fetch(url, proxy, errors)
            if outcome.ok:
                return outcome
            errors.append(f"proxy {proxy.label} failed: {outcome.error}")
            await self.pool.deactivate(proxy)
            picked = self.pool.next(index)

        errors.append("all proxies failed")
        return None

    def _adopt(self, result: DomainResult, outcome: FetchOutcome) -> None:
        result.status_code = outcome.status
        result.final_url = outcome.final_url
        result.response_time = format_duration(outcome.elapsed_s)
        result.redirect_location = redirect_target(outcome)
        result.errors.extend(response_warnings(outcome, self.config))

        evidence = classify(outcome.body, self.config.unknown_version)
        if evidence.is_wordpress:
            result.is_wordpress = True
            result.wordpress_version = evidence.version
            result.wordpress_evidences = evidence.provenance
            result.wordpress_theme = evidence.theme
            result.wordpress_plugins = evidence.plugins

    async def check_safely(self, domain: str) -> DomainResult:
        try:
            return await self.check(domain)
        except Exception as e:
            logger.exception("Unexpected error while checking %s", domain)
            return DomainResult(domain=domain, errors=[f"internal error: {e}"])

    async def check_many(self, domains: Iterable[str]) -> list[DomainResult]:
        """
        Check all domains with at most `max_concurrency` in flight.

        Results come back in completion order, one per input domain.
        """
        sem = asyncio.Semaphore(self.config.max_concurrency)

        async def bounded(domain: str) -> DomainResult:
            async with sem:
                return await self.check_safely(domain)

        results: list[DomainResult] = []
        for coro in asyncio.as_completed([bounded(d) for d in domains]):
            results.append(await coro)
        return results


async def check_domains(
    domains: Iterable[str],
    config: CheckConfig | None = None,
    *,
    pool: ProxyPool | None = None,
    fetcher: Fetcher | None = None,
    resolver: Resolver | None = None,
) -> list[DomainResult]:
    """
    Check a batch of domains. Loads the proxy pool from `config.proxies_path`
    unless one is passed in.
    """
    cfg = config or DEFAULT_CHECK_CONFIG
    if pool is None:
        pool = ProxyPool.load(cfg.resolve_path(cfg.proxies_path))
        logger.debug("Loaded %d proxies (%d active)", len(pool), pool.active_count)
    checker = DomainChecker(cfg, pool=pool, fetcher=fetcher, resolver=resolver)
    return await checker.check_many(domains)
