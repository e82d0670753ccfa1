"""
Input sources and API configurations.

An input source is exactly one of a closed set of variants, each tagged with
a SourceKind. Decoders are chosen by that tag alone.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Union

from ..constants import ApiDefaults
from ..core.errors import ConfigurationError


class SourceKind(str, Enum):
    """Input source variants."""
    JSON = "json"
    XML = "xml"
    CSV = "csv"
    RELATIONAL = "relational"
    DATAFRAME = "dataframe"
    API = "api"


# ============================================================================
# API configurations
# ============================================================================

class ApiProtocolId:
    """Canonical protocol ids and the aliases accepted in plans."""
    OGC_API_FEATURES = "ogc-api-features"
    WFS = "wfs"
    OPENAPI = "openapi"

    ALIASES = {
        "ogc-api-features": OGC_API_FEATURES,
        "ogc": OGC_API_FEATURES,
        "ogc-api": OGC_API_FEATURES,
        "wfs": WFS,
        "openapi": OPENAPI,
        "open-api": OPENAPI,
    }

    @classmethod
    def canonical(cls, protocol: str) -> str:
        key = (protocol or "").strip().lower()
        return cls.ALIASES.get(key, key)


@dataclass(frozen=True)
class OgcApiFeaturesConfig:
    """Paginated feature-collection API (OGC API - Features)."""
    base_url: str
    collection: str
    limit: Optional[int] = None
    bbox: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    record_path: Optional[str] = None


@dataclass(frozen=True)
class WfsConfig:
    """Legacy map-feature protocol (WFS GetFeature)."""
    base_url: str
    type_name: str
    version: str = ApiDefaults.WFS_VERSION
    output_format: str = ApiDefaults.WFS_OUTPUT_FORMAT
    srs_name: Optional[str] = None
    page_size: Optional[int] = None
    start_index: int = 0
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    record_path: Optional[str] = None


@dataclass(frozen=True)
class OpenApiConfig:
    """Single operation invocation described by an OpenAPI document."""
    spec: str
    operation_id: Optional[str] = None
    path: Optional[str] = None
    method: str = "GET"
    server: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None
    record_path: Optional[str] = None


@dataclass(frozen=True)
class CustomApiConfig:
    """Open key-value configuration for protocols registered by callers."""
    values: Dict[str, Any] = field(default_factory=dict)


ApiConfig = Union[OgcApiFeaturesConfig, WfsConfig, OpenApiConfig, CustomApiConfig]


def _require(config: Mapping[str, Any], key: str, protocol: str) -> str:
    value = config.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigurationError(f"{protocol} config requires '{key}'")
    return str(value)


def _optional_int(config: Mapping[str, Any], key: str) -> Optional[int]:
    value = config.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}")


def _string_map(config: Mapping[str, Any], key: str) -> Dict[str, str]:
    value = config.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return {str(k): str(v) for k, v in value.items()}


def _bbox(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def api_config_from_dict(
    protocol: str,
    config: Mapping[str, Any],
    resolve_ref: Optional[Callable[[str], str]] = None,
) -> ApiConfig:
    """Build the typed configuration for ``protocol`` from a plan mapping.

    ``resolve_ref`` turns a relative OpenAPI spec reference into an absolute
    location. Unknown protocols get a CustomApiConfig.
    """
    canonical = ApiProtocolId.canonical(protocol)
    if canonical == ApiProtocolId.OGC_API_FEATURES:
        return OgcApiFeaturesConfig(
            base_url=_require(config, "baseUrl", canonical),
            collection=_require(config, "collection", canonical),
            limit=_optional_int(config, "limit"),
            bbox=_bbox(config.get("bbox")),
            params=_string_map(config, "params"),
            headers=_string_map(config, "headers"),
            record_path=config.get("recordPath"),
        )
    if canonical == ApiProtocolId.WFS:
        start_index = _optional_int(config, "startIndex")
        return WfsConfig(
            base_url=_require(config, "baseUrl", canonical),
            type_name=_require(config, "typeName", canonical),
            version=str(config.get("version") or ApiDefaults.WFS_VERSION),
            output_format=str(config.get("outputFormat") or ApiDefaults.WFS_OUTPUT_FORMAT),
            srs_name=config.get("srsName"),
            page_size=_optional_int(config, "pageSize"),
            start_index=start_index if start_index is not None else 0,
            params=_string_map(config, "params"),
            headers=_string_map(config, "headers"),
            record_path=config.get("recordPath"),
        )
    if canonical == ApiProtocolId.OPENAPI:
        spec = _require(config, "spec", canonical)
        return OpenApiConfig(
            spec=resolve_ref(spec) if resolve_ref else spec,
            operation_id=config.get("operationId"),
            path=config.get("path"),
            method=str(config.get("method") or "GET").upper(),
            server=config.get("server"),
            params=_string_map(config, "params"),
            headers=_string_map(config, "headers"),
            body=config.get("body"),
            record_path=config.get("recordPath"),
        )
    return CustomApiConfig(values=dict(config))


# ============================================================================
# Input sources
# ============================================================================

@dataclass(frozen=True)
class JsonSource:
    """Raw JSON bytes."""
    kind: ClassVar[SourceKind] = SourceKind.JSON
    data: bytes


@dataclass(frozen=True)
class XmlSource:
    """Raw XML bytes."""
    kind: ClassVar[SourceKind] = SourceKind.XML
    data: bytes


@dataclass(frozen=True)
class CsvSource:
    """Raw delimited text; ``has_header`` selects keyed or ``colN`` records."""
    kind: ClassVar[SourceKind] = SourceKind.CSV
    data: bytes
    has_header: bool = True
    delimiter: str = ","


@dataclass(frozen=True)
class RelationalSource:
    """Relational query descriptor; exactly one of ``table`` and ``query``."""
    kind: ClassVar[SourceKind] = SourceKind.RELATIONAL
    url: str
    table: Optional[str] = None
    query: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if bool(self.table) == bool(self.query):
            raise ConfigurationError("Relational source needs exactly one of table or query")


@dataclass(frozen=True)
class DataFrameSource:
    """Dataframe descriptor: a ready frame, or a table/query for a session."""
    kind: ClassVar[SourceKind] = SourceKind.DATAFRAME
    table: Optional[str] = None
    query: Optional[str] = None
    frame: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.frame is None and not (self.table or self.query):
            raise ConfigurationError("Dataframe source needs a frame, a table or a query")


@dataclass(frozen=True)
class ApiSource:
    """API protocol id plus its configuration."""
    kind: ClassVar[SourceKind] = SourceKind.API
    protocol: str
    config: ApiConfig


InputSource = Union[JsonSource, XmlSource, CsvSource, RelationalSource, DataFrameSource, ApiSource]
