"""
Resource resolution by URI scheme.

Supported locations:
    package:<python.package>/<path>   data file shipped inside a Python package
    classpath:<python.package>/<path> alias of package:
    http://... / https://...          fetched with requests
    file:///abs/path                  local file URI
    relative/or/absolute/path         plain filesystem path
"""

import logging
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Optional, Protocol, Tuple, runtime_checkable
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from ..constants import CacheDefaults
from .errors import FetchError, ResourceNotFoundError

logger = logging.getLogger(__name__)

PACKAGE_SCHEMES = ("package:", "classpath:")
HTTP_SCHEMES = ("http://", "https://")


@runtime_checkable
class ResourceResolver(Protocol):
    """Resolves a URI to raw bytes."""

    def resolve(self, uri: str) -> bytes:
        """Return the bytes at ``uri``; raise FetchError/ResourceNotFoundError."""
        ...


def is_http(uri: str) -> bool:
    """True for http:// and https:// URIs."""
    return uri.lower().startswith(HTTP_SCHEMES)


def is_absolute_reference(ref: str) -> bool:
    """True when ``ref`` must not be joined against a base location."""
    lowered = ref.lower()
    if lowered.startswith(PACKAGE_SCHEMES + HTTP_SCHEMES) or lowered.startswith("file:"):
        return True
    return Path(ref).is_absolute()


def split_package_uri(uri: str) -> Tuple[str, str]:
    """Split ``package:pkg.name/some/file.json`` into ``("pkg.name", "some/file.json")``."""
    for scheme in PACKAGE_SCHEMES:
        if uri.lower().startswith(scheme):
            rest = uri[len(scheme):].lstrip("/")
            break
    else:
        raise ValueError(f"Not a package URI: {uri}")
    package, _, path = rest.partition("/")
    if not package or not path:
        raise ResourceNotFoundError(uri)
    return package, path


def file_uri_to_path(uri: str) -> Path:
    """Convert a ``file:`` URI to a local path."""
    parsed = urlparse(uri)
    return Path(url2pathname(parsed.path))


class DefaultResourceResolver:
    """Scheme-dispatching resolver with no caching."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Tuple[float, float] = (
            CacheDefaults.CONNECT_TIMEOUT_SECONDS,
            CacheDefaults.READ_TIMEOUT_SECONDS,
        ),
    ):
        self._session = session or requests.Session()
        self._timeout = timeout

    def resolve(self, uri: str) -> bytes:
        if not uri:
            raise ResourceNotFoundError(uri)
        lowered = uri.lower()
        if lowered.startswith(PACKAGE_SCHEMES):
            return self._resolve_package(uri)
        if is_http(uri):
            return self._resolve_http(uri)
        if lowered.startswith("file:"):
            return self._read_path(file_uri_to_path(uri), uri)
        return self._read_path(Path(uri), uri)

    def _resolve_package(self, uri: str) -> bytes:
        package, path = split_package_uri(uri)
        try:
            return importlib_resources.files(package).joinpath(path).read_bytes()
        except (ModuleNotFoundError, FileNotFoundError, IsADirectoryError):
            raise ResourceNotFoundError(uri)

    def _resolve_http(self, uri: str) -> bytes:
        logger.debug(f"GET {uri}")
        try:
            response = self._session.get(uri, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(uri, f"Failed to fetch {uri}: {e}")
        if response.status_code == 404:
            raise ResourceNotFoundError(uri)
        if not 200 <= response.status_code < 300:
            raise FetchError(
                uri, f"HTTP {response.status_code} from {uri}", status_code=response.status_code
            )
        return response.content

    @staticmethod
    def _read_path(path: Path, uri: str) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ResourceNotFoundError(uri)
        except IsADirectoryError:
            raise FetchError(uri, f"Not a file: {uri}")
        except OSError as e:
            raise FetchError(uri, f"Error reading {uri}: {e}")
