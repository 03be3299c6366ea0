"""
Policy module: decides how the per-domain checker moves between states,
and which non-fatal warnings a response deserves.

The logic is:
- explicit
- configurable
- easily auditable
"""

import re

from .results import FetchErrorKind, FetchOutcome
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG

REDIRECT_STATUSES = {301, 302, 303, 307, 308}

_TAG_RE = re.compile(r"<[^>]*>")


def should_retry_insecure(r: FetchOutcome) -> bool:
    return r.error_kind is FetchErrorKind.TLS


def should_use_proxies(r: FetchOutcome, config: CheckConfig | None = None) -> bool:
    cfg = config or DEFAULT_CHECK_CONFIG
    return r.ok and r.status == cfg.block_status


def redirect_target(r: FetchOutcome) -> str | None:
    if r.status in REDIRECT_STATUSES:
        return r.headers.get("Location") or None
    return None


def is_blank_screen(body: str) -> bool:
    return _TAG_RE.sub("", body).strip() == ""


def response_warnings(r: FetchOutcome, config: CheckConfig | None = None) -> list[str]:
    """
    Non-fatal findings about an adopted response, in reporting order.
    """
    cfg = config or DEFAULT_CHECK_CONFIG
    warnings = []

    if r.status != 200:
        warnings.append(f"status code {r.status}")
        if r.status == cfg.block_status and "Cloudflare" in r.body:
            warnings.append("blocked by Cloudflare")

    # A bodyless redirect is expected, not a blank page.
    if cfg.blank_screen_check and r.status not in REDIRECT_STATUSES and is_blank_screen(r.body):
        warnings.append("blank screen")

    return warnings
