import asyncio
import csv
import logging
import os
from enum import Enum
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# host, port, username, password, kind, active
PROXY_FIELD_COUNT = 6
ACTIVE_COLUMN = 5


class ProxyKind(str, Enum):
    HTTP = "http"        # plain HTTP proxy, no tunnel for http:// targets
    HTTPS = "https"      # HTTP proxy, always CONNECT-tunnelled
    SOCKS4 = "socks4"
    SOCKS5 = "socks5"


class ProxyDescriptor(BaseModel):
    host: str
    port: int
    username: str = ""
    password: str = ""
    kind: ProxyKind = ProxyKind.HTTP
    active: bool = True
    row: int = 0  # record position in the CSV, header included

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def label(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """
        Proxy URL with credentials only when both username and password are set.

        The HTTPS kind is an HTTP proxy used through CONNECT, so it keeps
        the http:// scheme.
        """
        scheme = "http" if self.kind in (ProxyKind.HTTP, ProxyKind.HTTPS) else self.kind.value
        if self.has_credentials:
            auth = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}@"
        else:
            auth = ""
        return f"{scheme}://{auth}{self.host}:{self.port}"


def _parse_row(record: list[str], row: int) -> ProxyDescriptor | None:
    if len(record) < PROXY_FIELD_COUNT:
        logger.warning("Skipping proxy row %d: expected %d fields, got %d", row, PROXY_FIELD_COUNT, len(record))
        return None

    host, port, username, password, kind, active = (v.strip() for v in record[:PROXY_FIELD_COUNT])
    try:
        return ProxyDescriptor(
            host=host,
            port=int(port),
            username=username,
            password=password,
            kind=ProxyKind(kind.lower()),
            active=active.lower() == "true",
            row=row,
        )
    except ValueError as e:
        logger.warning("Skipping proxy row %d: %s", row, e)
        return None


def load_proxies(path: str | Path) -> list[ProxyDescriptor]:
    """
    Load proxy descriptors from a CSV file with a header row.

    A missing or unreadable file yields an empty list; malformed rows are
    skipped without aborting the load.
    """
    p = Path(path)
    if not p.exists():
        logger.info("Proxy file not found: %s", p)
        return []

    try:
        with p.open(newline="", encoding="utf-8") as fh:
            records = list(csv.reader(fh))
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        logger.warning("Failed to read proxies from %s: %s", p, e)
        return []

    proxies = []
    for row, record in enumerate(records):
        if row == 0 or not record:
            continue
        proxy = _parse_row(record, row)
        if proxy is not None:
            proxies.append(proxy)
    return proxies


class ProxyPool:
    """
    Shared, lock-guarded list of proxies for one run.

    - next() only hands out proxies that are still active, in file order
    - deactivate() flips the flag in memory and rewrites the CSV row before
      returning, so every later next() call (from any worker) skips it
    """

    def __init__(self, proxies: list[ProxyDescriptor], path: str | Path | None = None):
        self.proxies = proxies
        self.path = Path(path) if path is not None else None
        self._lock = asyncio.Lock()

    @classmethod
    def load(cls, path: str | Path) -> "ProxyPool":
        return cls(load_proxies(path), path)

    def __len__(self) -> int:
        return len(self.proxies)

    @property
    def active_count(self) -> int:
        return sum(1 for p in self.proxies if p.active)

    def next(self, after_index: int = -1) -> tuple[int, ProxyDescriptor] | None:
        """
        First active proxy positioned after `after_index`, with its position.
        """
        for i in range(after_index + 1, len(self.proxies)):
            proxy = self.proxies[i]
            if proxy.active:
                return i, proxy
        return None

    async def deactivate(self, proxy: ProxyDescriptor) -> None:
        async with self._lock:
            if not proxy.active:
                return
            proxy.active = False
            logger.info("Deactivating proxy %s", proxy.label)
            if self.path is None:
                return
            try:
                await asyncio.to_thread(self._persist_inactive, proxy)
            except (OSError, csv.Error, UnicodeDecodeError) as e:
                logger.error("Could not persist deactivation of %s to %s: %s", proxy.label, self.path, e)

    def _persist_inactive(self, proxy: ProxyDescriptor) -> None:
        with self.path.open(newline="", encoding="utf-8") as fh:
            records = list(csv.reader(fh))

        if proxy.row >= len(records) or len(records[proxy.row]) < PROXY_FIELD_COUNT:
            logger.warning("Proxy row %d missing from %s, not persisted", proxy.row, self.path)
            return
        record = records[proxy.row]
        if record[0].strip() != proxy.host:
            logger.warning(
                "Proxy row %d in %s is %s, expected %s; not persisted",
                proxy.row, self.path, record[0], proxy.host,
            )
            return

        record[ACTIVE_COLUMN] = "false"

        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", newline="", encoding="utf-8") as fh:
            csv.writer(fh, lineterminator="\n").writerows(records)
        os.replace(tmp, self.path)
