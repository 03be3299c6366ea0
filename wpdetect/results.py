from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FetchErrorKind(str, Enum):
    CONNECTION = "connection"
    TLS = "tls"
    TIMEOUT = "timeout"


@dataclass
class FetchOutcome:
    """
    Result of a single network attempt made by the HttpFetcher.

    Fields:
        url         : The URL that was requested.
        status      : HTTP status code, None when the request failed.
        headers     : Response headers (case-insensitive mapping).
        body        : Fully buffered, decoded response body.
        final_url   : Effective URL of the response (redirects are not followed).
        elapsed_s   : Wall time of the attempt in seconds.
        error_kind  : Failure classification, None on success.
        error       : Human readable failure description.
        proxy_label : "host:port" of the proxy the attempt went through, if any.
    """
    url: str
    status: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    final_url: str | None = None
    elapsed_s: float = 0.0
    error_kind: FetchErrorKind | None = None
    error: str | None = None
    proxy_label: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


@dataclass
class DomainResult:
    """Final per-domain record; one per input domain."""
    domain: str
    domain_is_valid: bool = False
    domain_has_dns_record: bool = False
    final_url: str | None = None
    status_code: int | None = None
    is_wordpress: bool = False
    wordpress_version: str | None = None
    wordpress_evidences: str | None = None
    wordpress_theme: str | None = None
    wordpress_plugins: list[str] = field(default_factory=list)
    response_time: str | None = None
    proxy_used: str | None = None
    redirect_location: str | None = None
    errors: list[str] = field(default_factory=list)

    # Always rendered, even when false/empty.
    _REQUIRED = ("domain", "domain_is_valid", "domain_has_dns_record", "is_wordpress", "errors")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if name in self._REQUIRED or value not in (None, "", []):
                out[name] = list(value) if isinstance(value, list) else value
        return out
