"""
API protocol clients.

Usage:
    from semlift.api import create_default_protocol_registry
    from semlift.models import OgcApiFeaturesConfig

    registry = create_default_protocol_registry()
    protocol = registry.get("ogc")
    document = protocol.fetch(
        OgcApiFeaturesConfig(base_url="https://demo.example/api", collection="lakes"),
        resolver,
    )
"""

from typing import Optional

from .base import (
    ApiProtocol,
    ApiProtocolRegistry,
    HttpClient,
    TransientHttpError,
    append_query_params,
    select_records,
    substitute_path_params,
)
from .ogc_features import OgcApiFeaturesProtocol
from .wfs import WfsProtocol
from .openapi import OpenApiProtocol


def create_default_protocol_registry(
    http: Optional[HttpClient] = None,
    show_progress: bool = False,
) -> ApiProtocolRegistry:
    """Registry with the built-in protocols sharing one HTTP client."""
    client = http or HttpClient()
    return ApiProtocolRegistry([
        OgcApiFeaturesProtocol(client, show_progress),
        WfsProtocol(client, show_progress),
        OpenApiProtocol(client, show_progress),
    ])


__all__ = [
    "ApiProtocol",
    "ApiProtocolRegistry",
    "HttpClient",
    "TransientHttpError",
    "append_query_params",
    "select_records",
    "substitute_path_params",
    "OgcApiFeaturesProtocol",
    "WfsProtocol",
    "OpenApiProtocol",
    "create_default_protocol_registry",
]
