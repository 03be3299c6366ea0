"""
Domain validation run before any fetch is attempted.

Two independent checks:
- hostname grammar (dot-joined labels, alphabetic TLD of 2+ chars)
- name resolution through the system resolver, bounded by a timeout
"""

import asyncio
import logging
import re
import socket

logger = logging.getLogger(__name__)

DOMAIN_RE = re.compile(r"([a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}")


def is_valid_domain(host: str) -> bool:
    return DOMAIN_RE.fullmatch(host) is not None


async def has_dns_record(host: str, timeout_s: float) -> bool:
    """
    True when the host resolves to at least one address within `timeout_s`.
    Lookup failures and timeouts both count as "not registered".
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(host, None, type=socket.SOCK_STREAM),
            timeout=timeout_s,
        )
    except asyncio.TimeoutError:
        logger.debug("DNS lookup for %s timed out after %.1fs", host, timeout_s)
        return False
    except (OSError, UnicodeError) as e:
        logger.debug("DNS lookup for %s failed: %s", host, e)
        return False
    return bool(infos)
