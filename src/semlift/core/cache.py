"""
Caching resource resolver.

HTTP(S) resources are cached on disk as a pair of files named after a hash of
the URI:

    <key>.data   raw response bytes
    <key>.meta   JSON: uri, etag, lastModified, fetchedAt (ms), sha256 of data

Resolution rules:
    - Non-HTTP URIs bypass the cache and go to the delegate resolver.
    - An entry younger than the TTL is returned without network access.
    - Otherwise a conditional GET is sent (If-None-Match / If-Modified-Since).
      200 stores and returns the new bytes; 304 refreshes the timestamp and
      returns the cached bytes.
    - Any other status or a network failure returns the stale bytes when an
      entry exists and stale-if-error is enabled, else raises FetchError.

Both files are written through a temporary file and os.replace. A reader
that finds a mismatched or unreadable pair treats the entry as absent.

Usage:
    resolver = CachingResourceResolver(CacheConfig.default())
    context_bytes = resolver.resolve("https://example.org/context.jsonld")
"""

import base64
import hashlib
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

import requests

from ..constants import CacheDefaults
from .errors import FetchError, ProtocolError, ResourceNotFoundError
from .resources import DefaultResourceResolver, ResourceResolver, is_http

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================

def default_cache_dir() -> Path:
    """Cache directory from SEMLIFT_CACHE_DIR, else ~/.semlift/cache."""
    env_dir = os.environ.get(CacheDefaults.ENV_DIRECTORY)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / CacheDefaults.DIRECTORY_NAME


@dataclass(frozen=True)
class CacheConfig:
    """Configuration for the on-disk resource cache."""
    directory: Path = field(default_factory=default_cache_dir)
    ttl_seconds: float = CacheDefaults.TTL_SECONDS
    stale_if_error: bool = CacheDefaults.STALE_IF_ERROR
    connect_timeout: float = CacheDefaults.CONNECT_TIMEOUT_SECONDS
    read_timeout: float = CacheDefaults.READ_TIMEOUT_SECONDS

    @classmethod
    def default(cls) -> 'CacheConfig':
        return cls()

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> 'CacheConfig':
        """Create CacheConfig from a dictionary (``cache`` section or the section itself)."""
        cache_config = config_dict.get('cache', config_dict)
        config = cls()
        directory = cache_config.get('directory')
        return replace(
            config,
            directory=Path(directory).expanduser() if directory else config.directory,
            ttl_seconds=float(cache_config.get('ttl_seconds', config.ttl_seconds)),
            stale_if_error=bool(cache_config.get('stale_if_error', config.stale_if_error)),
            connect_timeout=float(cache_config.get('connect_timeout', config.connect_timeout)),
            read_timeout=float(cache_config.get('read_timeout', config.read_timeout)),
        )

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


# ============================================================================
# HTTP seam
# ============================================================================

@dataclass
class HttpResponse:
    """Minimal response view used by the cache."""
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class HttpFetcher(Protocol):
    """Performs one GET; raises on network failure."""

    def fetch(self, uri: str, headers: Mapping[str, str], timeout: Tuple[float, float]) -> HttpResponse:
        ...


class RequestsHttpFetcher:
    """HttpFetcher backed by a requests session."""

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()

    def fetch(self, uri: str, headers: Mapping[str, str], timeout: Tuple[float, float]) -> HttpResponse:
        response = self._session.get(uri, headers=dict(headers), timeout=timeout)
        return HttpResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
        )


# ============================================================================
# Cache entries
# ============================================================================

@dataclass(frozen=True)
class CacheMetadata:
    """Contents of a ``.meta`` file."""
    uri: str
    fetched_at: int
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    sha256: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "etag": self.etag,
            "lastModified": self.last_modified,
            "fetchedAt": self.fetched_at,
            "sha256": self.sha256,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CacheMetadata':
        return cls(
            uri=str(data["uri"]),
            fetched_at=int(data["fetchedAt"]),
            etag=data.get("etag"),
            last_modified=data.get("lastModified"),
            sha256=data.get("sha256"),
        )


@dataclass(frozen=True)
class CacheEntry:
    """A consistent data/metadata pair."""
    metadata: CacheMetadata
    data: bytes


def cache_key(uri: str) -> str:
    """SHA-256 of the URI, URL-safe base64 without padding."""
    digest = hashlib.sha256(uri.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


# ============================================================================
# Resolver
# ============================================================================

class CachingResourceResolver:
    """ResourceResolver that caches HTTP(S) resources on disk."""

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        fetcher: Optional[HttpFetcher] = None,
        delegate: Optional[ResourceResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or CacheConfig.default()
        self._fetcher = fetcher or RequestsHttpFetcher()
        self._delegate = delegate or DefaultResourceResolver(timeout=self.config.timeout)
        self._clock = clock

    def resolve(self, uri: str) -> bytes:
        if not is_http(uri):
            return self._delegate.resolve(uri)

        key = cache_key(uri)
        entry = self.read_entry(uri)
        now_ms = self._now_ms()

        if entry is not None and now_ms - entry.metadata.fetched_at < self.config.ttl_seconds * 1000:
            logger.debug(f"Cache hit for {uri}")
            return entry.data

        headers: Dict[str, str] = {}
        if entry is not None:
            if entry.metadata.etag:
                headers["If-None-Match"] = entry.metadata.etag
            if entry.metadata.last_modified:
                headers["If-Modified-Since"] = entry.metadata.last_modified

        logger.debug(f"Cache miss for {uri} (conditional={bool(headers)})")
        try:
            response = self._fetcher.fetch(uri, headers, self.config.timeout)
        except (requests.exceptions.RequestException, OSError) as e:
            return self._stale_or_raise(
                entry, FetchError(uri, f"Failed to fetch {uri}: {e}")
            )

        if response.status_code == 200:
            metadata = CacheMetadata(
                uri=uri,
                fetched_at=now_ms,
                etag=response.header("ETag"),
                last_modified=response.header("Last-Modified"),
                sha256=_sha256_hex(response.content),
            )
            self._write_entry(key, metadata, response.content)
            return response.content

        if response.status_code == 304:
            if entry is None:
                raise ProtocolError(
                    f"HTTP 304 from {uri} without a cached entry", status_code=304, url=uri
                )
            self._write_metadata(key, replace(entry.metadata, fetched_at=now_ms))
            logger.debug(f"Revalidated {uri} (304)")
            return entry.data

        if response.status_code == 404 and entry is None:
            raise ResourceNotFoundError(uri)
        return self._stale_or_raise(
            entry,
            FetchError(uri, f"HTTP {response.status_code} from {uri}", status_code=response.status_code),
        )

    def _stale_or_raise(self, entry: Optional[CacheEntry], error: FetchError) -> bytes:
        if entry is not None and self.config.stale_if_error:
            logger.warning(f"{error}; serving stale cache entry")
            return entry.data
        raise error

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Disk layout
    # ------------------------------------------------------------------

    def data_path(self, uri: str) -> Path:
        return self.config.directory / (cache_key(uri) + CacheDefaults.DATA_SUFFIX)

    def meta_path(self, uri: str) -> Path:
        return self.config.directory / (cache_key(uri) + CacheDefaults.META_SUFFIX)

    def read_entry(self, uri: str) -> Optional[CacheEntry]:
        """Return the cached entry for ``uri``, or None if absent or inconsistent."""
        meta_path = self.meta_path(uri)
        data_path = self.data_path(uri)
        if not meta_path.exists() or not data_path.exists():
            return None
        try:
            metadata = CacheMetadata.from_dict(json.loads(meta_path.read_text(encoding="utf-8")))
            data = data_path.read_bytes()
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Ignoring unreadable cache entry for {uri}: {e}")
            return None
        if metadata.uri != uri:
            logger.debug(f"Ignoring cache entry for {metadata.uri} found under key of {uri}")
            return None
        if metadata.sha256 and metadata.sha256 != _sha256_hex(data):
            logger.debug(f"Ignoring torn cache entry for {uri}")
            return None
        return CacheEntry(metadata=metadata, data=data)

    def _write_entry(self, key: str, metadata: CacheMetadata, data: bytes) -> None:
        self._atomic_write(self.config.directory / (key + CacheDefaults.DATA_SUFFIX), data)
        self._write_metadata(key, metadata)

    def _write_metadata(self, key: str, metadata: CacheMetadata) -> None:
        payload = json.dumps(metadata.to_dict(), indent=2).encode("utf-8")
        self._atomic_write(self.config.directory / (key + CacheDefaults.META_SUFFIX), payload)

    def _atomic_write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
