"""Decoder registry keyed by SourceKind."""

import logging
from typing import Any, Dict, Iterable, Optional

from ..core.errors import ConfigurationError
from ..core.resources import ResourceResolver
from ..models.documents import JsonDocument, LiftOptions
from ..models.sources import InputSource, SourceKind
from .decoders import (
    ApiProtocolDecoder,
    Connector,
    CsvToJsonDecoder,
    DataFrameToJsonDecoder,
    JsonDecoder,
    RelationalToJsonDecoder,
    SyntaxDecoder,
    XmlToJsonDecoder,
)

logger = logging.getLogger(__name__)


class DecoderRegistry:
    """Maps each SourceKind to exactly one decoder. Read-only after construction."""

    def __init__(self, decoders: Iterable[SyntaxDecoder]):
        self._decoders: Dict[SourceKind, SyntaxDecoder] = {}
        for decoder in decoders:
            self._decoders[decoder.kind] = decoder

    def decoder_for(self, source: InputSource) -> SyntaxDecoder:
        decoder = self._decoders.get(source.kind)
        if decoder is None:
            raise ConfigurationError(f"No decoder registered for {source.kind.value} sources")
        return decoder

    def decode(self, source: InputSource, options: LiftOptions) -> JsonDocument:
        logger.debug(f"Decoding {source.kind.value} source")
        return self.decoder_for(source).decode(source, options)


def create_default_decoder_registry(
    resolver: ResourceResolver,
    api_registry: Optional[Any] = None,
    connect: Optional[Connector] = None,
    dataframe_session: Any = None,
) -> DecoderRegistry:
    """Registry with every built-in decoder."""
    if api_registry is None:
        from ..api import create_default_protocol_registry
        api_registry = create_default_protocol_registry()
    return DecoderRegistry([
        JsonDecoder(),
        XmlToJsonDecoder(),
        CsvToJsonDecoder(),
        RelationalToJsonDecoder(connect=connect),
        DataFrameToJsonDecoder(session=dataframe_session),
        ApiProtocolDecoder(api_registry, resolver),
    ])
