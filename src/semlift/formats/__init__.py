"""Syntax decoders turning raw sources into JSON documents."""

from .decoders import (
    SyntaxDecoder,
    JsonDecoder,
    XmlToJsonDecoder,
    CsvToJsonDecoder,
    RelationalToJsonDecoder,
    DataFrameToJsonDecoder,
    ApiProtocolDecoder,
    coerce_cell,
)
from .registry import DecoderRegistry, create_default_decoder_registry
from .xml_support import parse_xml

__all__ = [
    "SyntaxDecoder",
    "JsonDecoder",
    "XmlToJsonDecoder",
    "CsvToJsonDecoder",
    "RelationalToJsonDecoder",
    "DataFrameToJsonDecoder",
    "ApiProtocolDecoder",
    "coerce_cell",
    "DecoderRegistry",
    "create_default_decoder_registry",
    "parse_xml",
]
