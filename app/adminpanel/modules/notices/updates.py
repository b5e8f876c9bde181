from __future__ import annotations

import http.client
import logging
import re
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import asdict, dataclass

from app.adminpanel.errors import UpstreamUnavailable
from app.adminpanel.modules.settings.service import ConfigStore, parse_bool

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

_SEGMENT_RE = re.compile(r"(\d+)(.*)")


@dataclass
class UpdateCheckCache:
    enabled: bool = True
    last_checked: int = 0
    cached_version: str = ""
    check_interval_days: int = 7

    @classmethod
    def load(cls, store: ConfigStore) -> "UpdateCheckCache":
        d = cls()

        def as_int(raw: object, default: int) -> int:
            try:
                return int(raw)  # type: ignore[arg-type]
            except (TypeError, ValueError):
                return default

        return cls(
            enabled=parse_bool(store.get("updatecheck", d.enabled)),
            last_checked=as_int(store.get("updatelastchecked"), d.last_checked),
            cached_version=str(store.get("updateversion", d.cached_version) or ""),
            check_interval_days=as_int(store.get("updatefrequency"), d.check_interval_days),
        )

    def save(self, store: ConfigStore) -> None:
        store.set("updateversion", self.cached_version)
        store.set("updatelastchecked", int(self.last_checked))


@dataclass(frozen=True)
class UpdateNotice:
    show: bool
    version: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _version_key(version: str) -> tuple[list[int], tuple[int, str]]:
    """
    "3.10.0" -> [3, 10, 0]; a trailing pre-release tag ("1.4.0-rc1") sorts
    before the bare release.
    """
    core, sep, pre = version.strip().lstrip("vV").partition("-")
    numbers: list[int] = []
    for segment in core.split("."):
        m = _SEGMENT_RE.match(segment)
        if not m:
            numbers.append(0)
            continue
        numbers.append(int(m.group(1)))
        if m.group(2) and not pre:
            pre = m.group(2)
    return numbers, (0, pre) if pre else (1, "")


def compare_versions(a: str, b: str) -> int:
    """-1, 0 or 1, comparing dotted versions numerically segment by segment."""
    a_nums, a_pre = _version_key(a)
    b_nums, b_pre = _version_key(b)
    width = max(len(a_nums), len(b_nums))
    a_nums += [0] * (width - len(a_nums))
    b_nums += [0] * (width - len(b_nums))
    left, right = (a_nums, a_pre), (b_nums, b_pre)
    if left == right:
        return 0
    return 1 if left > right else -1


def fetch_remote_version(url: str, *, timeout: float, user_agent: str) -> str:
    """Single GET, no retry. Any failure surfaces as UpstreamUnavailable."""
    try:
        req = urllib.request.Request(url, method="GET")
        req.add_header("User-Agent", user_agent)
        req.add_header("Accept", "text/plain")
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read(256)
    except urllib.error.HTTPError as e:
        raise UpstreamUnavailable(f"HTTP {e.code} from update server") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise UpstreamUnavailable(f"Update server unreachable: {e}") from e
    except http.client.HTTPException as e:
        raise UpstreamUnavailable(f"Malformed response from update server: {e!r}") from e
    except ValueError as e:
        raise UpstreamUnavailable(f"Invalid update server URL {url!r}: {e}") from e
    version = raw.decode("utf-8", errors="ignore").strip()
    if not version:
        raise UpstreamUnavailable("Empty response from update server")
    return version


class UpdateChecker:
    def __init__(
        self,
        store: ConfigStore,
        running_version: str,
        url: str,
        *,
        timeout: float = 5.0,
        fetch: Callable[..., str] = fetch_remote_version,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.running_version = running_version
        self.url = url
        self.timeout = timeout
        self.fetch = fetch
        self.clock = clock

    def check(self, force: bool = False) -> UpdateNotice:
        cache = UpdateCheckCache.load(self.store)
        if not cache.enabled:
            return UpdateNotice(show=False)

        now = int(self.clock())
        interval = cache.check_interval_days * SECONDS_PER_DAY
        if not force and (now - cache.last_checked) < interval:
            remote = cache.cached_version
        else:
            try:
                remote = self.fetch(
                    self.url,
                    timeout=self.timeout,
                    user_agent=f"AdminPanel/{self.running_version}",
                )
            except UpstreamUnavailable as e:
                # Cache untouched so the next request retries.
                logger.warning("Update check failed: %s", e)
                return UpdateNotice(show=False)
            cache.cached_version = remote
            cache.last_checked = now
            cache.save(self.store)

        if remote and compare_versions(remote, self.running_version) > 0:
            return UpdateNotice(show=True, version=remote)
        return UpdateNotice(show=False)
