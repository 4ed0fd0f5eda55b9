"""Single-slot on-disk cache for the describe-tags response.

Caching is switched on by the ``ec2tagfacts`` Puppet class (Hiera key
``ec2tagfacts::cache_aws_api_calls: true``), which creates the marker file.
This module never creates or removes the marker; it only reads and writes the
content file.  The cached response is never expired here; delete
``/var/tmp/ec2tagfacts.cache_content`` to force a fresh query.

If you move either path, change the Puppet class as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .base import CacheError, FactLogger, ParseError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_MARKER = Path("/var/tmp/ec2tagfacts.cache_enabled")
DEFAULT_CACHE_CONTENT = Path("/var/tmp/ec2tagfacts.cache_content")


@dataclass(frozen=True)
class CacheConfig:
    cache_enabled: bool
    content_path: Path = DEFAULT_CACHE_CONTENT

    @classmethod
    def from_marker(
        cls,
        marker_path: Path = DEFAULT_CACHE_MARKER,
        content_path: Path = DEFAULT_CACHE_CONTENT,
    ) -> "CacheConfig":
        """Build the config from the existence of the marker file."""
        return cls(cache_enabled=Path(marker_path).exists(), content_path=Path(content_path))


def read_or_fetch(
    fetch: Callable[[], str],
    config: CacheConfig,
    log: FactLogger = logger,
) -> str:
    """Return the cached response, or call *fetch* and cache what it returns.

    The cached text is returned verbatim and is not validated here; a corrupt
    file surfaces later as a parse error.  A failed cache write is logged and
    the fetched response is still returned.

    Raises:
        CacheError: if the cache file exists but cannot be read.
        ParseError: if the cache file is not valid UTF-8.
    """
    if not config.cache_enabled:
        return fetch()

    path = config.content_path
    if path.exists():
        try:
            with open(path, encoding="utf-8", newline="") as f:
                raw = f.read()
        except OSError as exc:
            raise CacheError(f"Could not read cached tags from {path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise ParseError(
                f"Cached tags in {path} are not valid UTF-8 ({exc}); remove the file to query again"
            ) from exc
        log.info("Using cached describe-tags response from %s", path)
        return raw

    raw = fetch()
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(raw)
    except OSError as exc:
        log.error("Could not write tag cache %s: %s", path, exc)
    else:
        log.info("Cached describe-tags response in %s", path)
    return raw
