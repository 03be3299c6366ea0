import re
from urllib.parse import urlparse

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(domain: str) -> str:
    """
    Turn a raw domain argument into the URL that gets fetched.

    Bare hosts get https://, inputs that already carry http:// or https://
    keep their scheme.
    """
    domain = domain.strip()
    if _SCHEME_RE.match(domain):
        return domain
    return f"https://{domain}"


def host_of(domain: str) -> str:
    """Hostname part of a raw domain argument (no scheme, port or path)."""
    try:
        return urlparse(normalize_url(domain)).hostname or ""
    except ValueError:
        # unbalanced IPv6 brackets and similar
        return ""


def format_duration(seconds: float) -> str:
    """
    Human readable duration, e.g. "1.532s", "842ms", "95µs".
    """
    if seconds >= 1:
        return f"{seconds:.3f}s"
    if seconds >= 0.001:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds * 1_000_000:.0f}µs"
