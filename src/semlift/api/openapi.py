"""OpenAPI operation invocation (``openapi``)."""

import logging
from typing import Any, Mapping, Optional, Tuple

from ..core.cancellation import CancellationToken, check_cancelled
from ..core.errors import ConfigurationError
from ..core.resources import ResourceResolver
from ..models.documents import JsonDocument
from ..models.sources import ApiConfig, ApiProtocolId, OpenApiConfig
from .base import (
    ApiProtocol,
    append_query_params,
    parse_json,
    parse_json_or_yaml,
    select_records,
    substitute_path_params,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


def resolve_operation(spec: Mapping[str, Any], config: OpenApiConfig) -> Tuple[str, str]:
    """Return ``(path, METHOD)`` from an explicit path or an operationId lookup."""
    if config.path:
        return config.path, config.method.upper()
    if not config.operation_id:
        raise ConfigurationError("OpenAPI requires operationId or path+method")
    paths = spec.get("paths")
    if not isinstance(paths, Mapping):
        raise ConfigurationError("OpenAPI spec missing paths")
    for path, operations in paths.items():
        if not isinstance(operations, Mapping):
            continue
        for method, operation in operations.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, Mapping):
                continue
            if operation.get("operationId") == config.operation_id:
                return path, method.upper()
    raise ConfigurationError(f"OpenAPI operationId not found: {config.operation_id}")


def resolve_server(spec: Mapping[str, Any], config: OpenApiConfig) -> str:
    if config.server:
        return config.server
    servers = spec.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], Mapping):
        url = servers[0].get("url")
        if url:
            return str(url)
    raise ConfigurationError("OpenAPI server URL missing; set config.server or spec servers[0].url")


class OpenApiProtocol(ApiProtocol):
    """Invokes one operation and returns the records it answers with."""

    id = ApiProtocolId.OPENAPI

    def fetch(
        self,
        config: ApiConfig,
        resolver: ResourceResolver,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> JsonDocument:
        config = self._require_config(config, OpenApiConfig)
        spec = parse_json_or_yaml(resolver.resolve(config.spec), config.spec)
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"OpenAPI document {config.spec} is not an object")

        path, method = resolve_operation(spec, config)
        server = resolve_server(spec, config)
        resolved_path, query = substitute_path_params(path, config.params)
        url = append_query_params(server.rstrip("/") + resolved_path, query)

        check_cancelled(cancellation_token)
        with self._progress() as pbar:
            page = parse_json(self.http.request(method, url, config.headers, config.body), url)
            pbar.update(1)

        records = select_records(page, config.record_path)
        logger.info(f"Invoked {method} {url}")
        return JsonDocument.from_value(records)
