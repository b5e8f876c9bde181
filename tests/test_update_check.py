import socket
import threading

import pytest

from app.adminpanel.errors import UpstreamUnavailable
from app.adminpanel.modules.notices.updates import (
    SECONDS_PER_DAY,
    UpdateChecker,
    compare_versions,
    fetch_remote_version,
)

from fakes import FakeConfigStore

NOW = 1_700_000_000


class FakeFetch:
    def __init__(self, result="1.5.0", error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, url, *, timeout, user_agent):
        self.calls.append((url, timeout, user_agent))
        if self.error is not None:
            raise self.error
        return self.result


def _checker(values, fetch, running="1.4.0"):
    store = FakeConfigStore(values, namespace="System")
    checker = UpdateChecker(store, running, "https://updates.example/version", timeout=2.0, fetch=fetch, clock=lambda: NOW)
    return checker, store


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("3.10.0", "3.9.5", 1),
        ("1.4.0", "1.4.0", 0),
        ("1.4", "1.4.0", 0),
        ("1.4.0-rc1", "1.4.0", -1),
        ("1.3.9", "1.4.0", -1),
    ],
)
def test_compare_versions(a, b, expected):
    assert compare_versions(a, b) == expected


def test_disabled_check_never_fetches():
    fetch = FakeFetch()
    checker, _ = _checker({"updatecheck": False}, fetch)
    assert checker.check(force=True).show is False
    assert fetch.calls == []


def test_fresh_cache_does_not_fetch():
    fetch = FakeFetch()
    checker, _ = _checker(
        {"updatelastchecked": NOW - SECONDS_PER_DAY, "updateversion": "1.5.0", "updatefrequency": 7},
        fetch,
    )
    notice = checker.check()
    assert fetch.calls == []
    assert notice.show is True
    assert notice.version == "1.5.0"


def test_stale_cache_fetches_and_persists():
    fetch = FakeFetch("1.6.0")
    checker, store = _checker({"updatelastchecked": NOW - 8 * SECONDS_PER_DAY, "updateversion": "1.5.0"}, fetch)
    notice = checker.check()
    assert len(fetch.calls) == 1
    assert fetch.calls[0][2] == "AdminPanel/1.4.0"
    assert notice.version == "1.6.0"
    assert store.values["updateversion"] == "1.6.0"
    assert store.values["updatelastchecked"] == NOW


def test_same_version_not_shown():
    checker, _ = _checker({}, FakeFetch("1.4.0"))
    assert checker.check().show is False


def test_forced_check_timeout_leaves_cache_untouched():
    fetch = FakeFetch(error=UpstreamUnavailable("timed out"))
    last = NOW - 60
    checker, store = _checker({"updatelastchecked": last, "updateversion": "1.5.0"}, fetch)
    notice = checker.check(force=True)
    assert len(fetch.calls) == 1
    assert notice.show is False
    assert store.values["updatelastchecked"] == last
    assert store.writes == []


@pytest.fixture()
def version_server():
    """One-shot TCP server that answers a single request with canned bytes (None = never answer)."""
    started = []

    def start(response, hold=3.0):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        sock.listen(1)
        sock.settimeout(5)
        done = threading.Event()

        def serve():
            try:
                conn, _ = sock.accept()
            except OSError:
                return
            with conn:
                conn.recv(4096)
                if response is None:
                    done.wait(hold)
                else:
                    conn.sendall(response)

        t = threading.Thread(target=serve, daemon=True)
        t.start()
        started.append((sock, done, t))
        return f"http://127.0.0.1:{sock.getsockname()[1]}/version"

    yield start
    for sock, done, t in started:
        done.set()
        t.join(timeout=5)
        sock.close()


def _real_checker(url, last):
    store = FakeConfigStore({"updatelastchecked": last, "updateversion": "1.5.0"}, namespace="System")
    return UpdateChecker(store, "1.4.0", url, timeout=0.5, clock=lambda: NOW), store


@pytest.mark.parametrize(
    "response",
    [
        None,
        b"HTTP/1.1 500 Internal Server Error\r\nContent-Length: 0\r\nConnection: close\r\n\r\n",
        b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\nConnection: close\r\n\r\n",
        b"NOT-HTTP garbage\r\n\r\n",
    ],
    ids=["stalled", "http-500", "empty-body", "bad-status-line"],
)
def test_upstream_failures_hide_notice_and_keep_cache(version_server, response):
    last = NOW - 60
    checker, store = _real_checker(version_server(response), last)
    notice = checker.check(force=True)
    assert notice.show is False
    assert store.values["updatelastchecked"] == last
    assert store.writes == []


def test_bad_status_line_is_upstream_unavailable(version_server):
    url = version_server(b"NOT-HTTP garbage\r\n\r\n")
    with pytest.raises(UpstreamUnavailable):
        fetch_remote_version(url, timeout=0.5, user_agent="AdminPanel/1.4.0")


def test_malformed_url_hides_notice():
    checker, store = _real_checker("not a url", NOW - 60)
    assert checker.check(force=True).show is False
    assert store.writes == []


def test_real_fetch_reads_remote_version(version_server):
    url = version_server(b"HTTP/1.1 200 OK\r\nContent-Length: 6\r\nConnection: close\r\n\r\n1.5.1\n")
    checker, store = _real_checker(url, NOW - 60)
    notice = checker.check(force=True)
    assert notice.show is True
    assert notice.version == "1.5.1"
    assert store.values["updatelastchecked"] == NOW
