import json
import os
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from iplookup.logger import logger

CACHE_SUFFIX = ".json"


class ResponseCache:
    """File cache of lookup responses, one JSON file per IP address.

    A file's modification time is the moment the response was fetched; an entry
    is served only while its age in seconds is strictly below `ttl_seconds`.
    A TTL of 0 disables the cache entirely.
    """

    def __init__(self, directory: Path, ttl_seconds: int, clock: Callable[[], float] = time.time) -> None:
        self._directory = directory.expanduser()
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def enabled(self) -> bool:
        return self._ttl_seconds > 0

    def path_for(self, ip: str) -> Path:
        # Colons in IPv6 addresses are not portable in file names.
        return self._directory / f"{ip.replace(':', '_')}{CACHE_SUFFIX}"

    def age_of(self, ip: str) -> float | None:
        """Seconds since the entry for `ip` was written, or None when there is none."""
        try:
            mtime = self.path_for(ip).stat().st_mtime
        except OSError:
            return None
        return self._clock() - mtime

    def get(self, ip: str) -> dict[str, Any] | None:
        """Return the cached payload for `ip` if a valid entry exists."""
        if not self.enabled:
            return None

        age = self.age_of(ip)
        if age is None:
            logger.debug(f"Cache miss ip={ip} reason=absent")
            return None
        if age >= self._ttl_seconds:
            logger.debug(f"Cache miss ip={ip} reason=expired age={age:.0f}s ttl={self._ttl_seconds}s")
            return None

        path = self.path_for(ip)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Discarding unreadable cache entry path={path} error={exc}")
            path.unlink(missing_ok=True)
            return None
        if not isinstance(payload, dict):
            logger.warning(f"Discarding malformed cache entry path={path}")
            path.unlink(missing_ok=True)
            return None

        logger.debug(f"Cache hit ip={ip} age={age:.0f}s ttl={self._ttl_seconds}s")
        return payload

    def put(self, ip: str, payload: dict[str, Any]) -> None:
        """Store `payload` for `ip`. Failures are logged and otherwise ignored."""
        if not self.enabled:
            return

        path = self.path_for(ip)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-", suffix=CACHE_SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                    json.dump(payload, tmp_file, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning(f"Could not write cache entry path={path} error={exc}")
            return
        logger.debug(f"Cached response ip={ip} path={path}")

    def discard(self, ip: str) -> None:
        """Remove the entry for `ip`, if any."""
        self.path_for(ip).unlink(missing_ok=True)

    def clear(self) -> int:
        """Remove every cached entry and return how many were removed."""
        if not self._directory.is_dir():
            return 0
        removed = 0
        for path in self._directory.glob(f"*{CACHE_SUFFIX}"):
            path.unlink(missing_ok=True)
            removed += 1
        logger.info(f"Cleared cache directory={self._directory} removed={removed}")
        return removed
