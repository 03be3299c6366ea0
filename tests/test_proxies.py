import asyncio
from pathlib import Path

import pytest

from wpdetect.proxies import ProxyDescriptor, ProxyKind, ProxyPool, load_proxies

PROXY_CSV = (
    "host,port,username,password,type,active\n"
    "10.0.0.1,8080,,,http,true\n"
    "10.0.0.2,3128,alice,s3cret,https,true\n"
    "10.0.0.3,1080,,,socks5,false\n"
    "10.0.0.4,1080\n"
    "10.0.0.5,1081,bob,,socks4,TRUE\n"
)


@pytest.fixture
def proxy_file(tmp_path: Path) -> Path:
    p = tmp_path / "proxies.csv"
    p.write_text(PROXY_CSV, encoding="utf-8")
    return p


def test_load_skips_header_and_short_rows(proxy_file: Path):
    proxies = load_proxies(proxy_file)

    assert [p.label for p in proxies] == ["10.0.0.1:8080", "10.0.0.2:3128", "10.0.0.3:1080", "10.0.0.5:1081"]
    assert [p.active for p in proxies] == [True, True, False, True]
    assert [p.kind for p in proxies] == [ProxyKind.HTTP, ProxyKind.HTTPS, ProxyKind.SOCKS5, ProxyKind.SOCKS4]
    assert [p.row for p in proxies] == [1, 2, 3, 5]


def test_load_skips_unknown_kind_and_bad_port(tmp_path: Path):
    p = tmp_path / "proxies.csv"
    p.write_text(
        "host,port,username,password,type,active\n"
        "10.0.0.1,80,,,ftp,true\n"
        "10.0.0.2,eighty,,,http,true\n"
        "10.0.0.3,81,,,http,true\n",
        encoding="utf-8",
    )
    assert [x.label for x in load_proxies(p)] == ["10.0.0.3:81"]


def test_missing_file_is_empty_pool(tmp_path: Path):
    pool = ProxyPool.load(tmp_path / "missing.csv")
    assert len(pool) == 0
    assert pool.active_count == 0
    assert pool.next() is None


def test_url_uses_credentials_only_when_both_set():
    with_auth = ProxyDescriptor(host="h", port=1, username="u@x", password="p:w", kind=ProxyKind.HTTPS)
    user_only = ProxyDescriptor(host="h", port=2, username="u", kind=ProxyKind.SOCKS5)

    assert with_auth.url == "http://u%40x:p%3Aw@h:1"
    assert user_only.url == "socks5://h:2"
    assert not user_only.has_credentials


def test_next_yields_active_in_file_order(proxy_file: Path):
    pool = ProxyPool.load(proxy_file)

    seen = []
    picked = pool.next()
    while picked is not None:
        index, proxy = picked
        seen.append(proxy.host)
        picked = pool.next(index)

    assert seen == ["10.0.0.1", "10.0.0.2", "10.0.0.5"]


@pytest.mark.asyncio
async def test_deactivate_persists_only_the_active_flag(proxy_file: Path):
    pool = ProxyPool.load(proxy_file)
    _, second = pool.next(0)

    await pool.deactivate(second)

    assert not second.active
    assert pool.next(0)[1].host == "10.0.0.5"

    lines = proxy_file.read_text(encoding="utf-8").splitlines()
    expected = PROXY_CSV.splitlines()
    expected[2] = "10.0.0.2,3128,alice,s3cret,https,false"
    assert lines == expected

    reloaded = load_proxies(proxy_file)
    assert [p.active for p in reloaded] == [True, False, False, True]


@pytest.mark.asyncio
async def test_concurrent_deactivations_do_not_lose_updates(proxy_file: Path):
    pool = ProxyPool.load(proxy_file)
    active = [p for p in pool.proxies if p.active]

    await asyncio.gather(*(pool.deactivate(p) for p in active), *(pool.deactivate(p) for p in active))

    assert pool.active_count == 0
    assert pool.next() is None
    assert [p.active for p in load_proxies(proxy_file)] == [False, False, False, False]
    assert len(proxy_file.read_text(encoding="utf-8").splitlines()) == len(PROXY_CSV.splitlines())


@pytest.mark.asyncio
async def test_in_memory_pool_deactivates_without_file():
    proxy = ProxyDescriptor(host="10.1.1.1", port=8080)
    pool = ProxyPool([proxy])

    await pool.deactivate(proxy)

    assert pool.active_count == 0


@pytest.mark.asyncio
async def test_unreadable_file_keeps_in_memory_deactivation(proxy_file: Path):
    pool = ProxyPool.load(proxy_file)
    _, first = pool.next()
    proxy_file.write_bytes(b"host,port,username,password,type,active\n10.0.0.1,8080,\xff\xfe,,http,true\n")

    await pool.deactivate(first)

    assert not first.active
    assert pool.next()[1].host == "10.0.0.2"
