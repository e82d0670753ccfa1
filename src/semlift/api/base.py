"""
API protocol clients: shared HTTP plumbing and the protocol registry.

Every protocol implements ``fetch(config, resolver, cancellation_token)`` and
returns a JSON document holding one array with the records of all pages.

HTTP behaviour:
    - 429 and 503 responses, timeouts and connection errors are retried with
      exponential backoff (tenacity).
    - Any other non-2xx status raises ProtocolError with status and URL.
    - Network failures that survive the retries raise FetchError.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlencode, quote

import requests
import yaml
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)
from tqdm import tqdm

from ..constants import ApiDefaults
from ..core.cancellation import CancellationToken
from ..core.errors import ConfigurationError, DecodeError, FetchError, ProtocolError
from ..core.json_pointer import contains as pointer_contains, get as pointer_get
from ..core.resources import ResourceResolver
from ..formats.xml_support import parse_xml
from ..models.documents import JsonDocument
from ..models.sources import ApiConfig, ApiProtocolId

logger = logging.getLogger(__name__)


# ============================================================================
# HTTP client
# ============================================================================

class TransientHttpError(Exception):
    """Transient HTTP status (429, 503) that should be retried."""
    def __init__(self, status_code: int, url: str, body: str = ""):
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(f"Transient error (HTTP {status_code}) from {url}")


def _is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient error that should be retried."""
    if isinstance(exception, TransientHttpError):
        return True
    if isinstance(exception, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return True
    return False


class HttpClient:
    """Thin requests wrapper with retry and uniform error mapping."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = ApiDefaults.TIMEOUT_SECONDS,
    ):
        self._session = session or requests.Session()
        self.timeout = timeout

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[Any] = None,
    ) -> bytes:
        """Send one request and return the body of a 2xx response."""
        try:
            return self._send(method.upper(), url, dict(headers or {}), body)
        except TransientHttpError as e:
            raise ProtocolError(
                f"HTTP {e.status_code} from {url}: {e.body}", status_code=e.status_code, url=url
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise FetchError(url, f"Request to {url} failed: {e}")

    @retry(
        stop=stop_after_attempt(ApiDefaults.MAX_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=2, min=2, max=60),
        retry=retry_if_exception(_is_transient_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _send(self, method: str, url: str, headers: Dict[str, str], body: Optional[Any]) -> bytes:
        kwargs: Dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if body is not None:
            headers.setdefault("Content-Type", "application/json")
            kwargs["data"] = body.encode("utf-8") if isinstance(body, str) else json.dumps(body).encode("utf-8")

        logger.debug(f"{method} {url}")
        response = self._session.request(method, url, **kwargs)

        if response.status_code in (429, 503):
            logger.warning(f"HTTP {response.status_code} from {url}; retrying")
            raise TransientHttpError(response.status_code, url, response.text[:500])
        if not 200 <= response.status_code < 300:
            raise ProtocolError(
                f"HTTP {response.status_code} from {url}: {response.text[:500]}",
                status_code=response.status_code,
                url=url,
            )
        return response.content


# ============================================================================
# Helpers
# ============================================================================

def append_query_params(url: str, params: Mapping[str, Any]) -> str:
    """Append form-encoded ``params`` to ``url``, keeping any existing query."""
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return url + separator + urlencode([(k, str(v)) for k, v in params.items()])


_PATH_PARAM_RE = re.compile(r"\{([^}]+)\}")


def substitute_path_params(path: str, params: Mapping[str, str]) -> Tuple[str, Dict[str, str]]:
    """Fill ``{name}`` placeholders from ``params``; return the path and unused params."""
    remaining = dict(params)

    def _replace(match: "re.Match") -> str:
        key = match.group(1)
        if key not in remaining:
            raise ConfigurationError(f"Missing path param: {key}")
        return quote(str(remaining.pop(key)), safe="")

    return _PATH_PARAM_RE.sub(_replace, path), remaining


def record_pointer(record_path: str) -> str:
    """``a.b`` becomes ``/a/b``; pointers are returned unchanged."""
    if record_path.startswith("/"):
        return record_path
    return "/" + "/".join(record_path.split("."))


def select_records(node: Any, record_path: Optional[str]) -> Any:
    """Return the value at ``record_path`` (JSON pointer or dotted path)."""
    if not record_path or not record_path.strip():
        return node
    pointer = record_pointer(record_path.strip())
    if not pointer_contains(node, pointer):
        raise ProtocolError(f"Record path not found: {record_path}")
    return pointer_get(node, pointer)


def append_records(target: List[Any], records: Any) -> int:
    """Extend ``target`` with an array of records or append a single record."""
    if isinstance(records, list):
        target.extend(records)
        return len(records)
    target.append(records)
    return 1


def parse_json(data: bytes, url: str) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Malformed JSON response from {url}: {e}", url=url)


def parse_json_or_xml(data: bytes, url: str) -> Any:
    """Parse a response that may be JSON or XML."""
    stripped = data.lstrip()
    if stripped.startswith(b"<"):
        try:
            return parse_xml(data)
        except DecodeError as e:
            raise ProtocolError(f"Malformed XML response from {url}: {e}", url=url)
    return parse_json(data, url)


def parse_json_or_yaml(data: bytes, location: str) -> Any:
    """Parse an API description written in JSON or YAML."""
    text = data.decode("utf-8").lstrip()
    if text.startswith("{") or text.startswith("["):
        try:
            return json.loads(text)
        except ValueError as e:
            raise ConfigurationError(f"Invalid JSON in {location}: {e}")
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {location}: {e}")
    return loaded if loaded is not None else {}


# ============================================================================
# Protocol base and registry
# ============================================================================

class ApiProtocol(ABC):
    """A paginated API client producing one JSON array of records."""

    id: str = ""

    def __init__(self, http: Optional[HttpClient] = None, show_progress: bool = False):
        self.http = http or HttpClient()
        self.show_progress = show_progress

    @abstractmethod
    def fetch(
        self,
        config: ApiConfig,
        resolver: ResourceResolver,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> JsonDocument:
        """Fetch every page described by ``config``."""
        pass

    def _progress(self) -> tqdm:
        return tqdm(desc=f"{self.id} pages", unit="page", disable=not self.show_progress)

    def _require_config(self, config: ApiConfig, expected: type) -> Any:
        if not isinstance(config, expected):
            raise ConfigurationError(
                f"{self.id} protocol requires {expected.__name__}, got {type(config).__name__}"
            )
        return config


class ApiProtocolRegistry:
    """Protocol lookup by id (case-insensitive, plan aliases accepted)."""

    def __init__(self, protocols: Iterable[ApiProtocol] = ()):
        self._protocols: Dict[str, ApiProtocol] = {}
        for protocol in protocols:
            self.register(protocol)

    def register(self, protocol: ApiProtocol) -> None:
        self._protocols[protocol.id.lower()] = protocol

    def get(self, protocol_id: str) -> ApiProtocol:
        key = (protocol_id or "").lower()
        protocol = self._protocols.get(key) or self._protocols.get(ApiProtocolId.canonical(key))
        if protocol is None:
            raise ProtocolError(f"Unsupported API protocol: {protocol_id}")
        return protocol

    @property
    def ids(self) -> List[str]:
        return sorted(self._protocols)
