"""
Syntax decoders: raw input sources to JSON documents.

Each decoder handles exactly one SourceKind. The registry in
semlift.formats.registry picks the decoder by the source's tag.

Variants:
    JsonDecoder          JSON bytes, validated and passed through
    XmlToJsonDecoder     XML tree mapping (see xml_support)
    CsvToJsonDecoder     array of records, optional type inference
    RelationalToJsonDecoder  DB-API 2 query results
    DataFrameToJsonDecoder   pandas (or Spark-style session) records
    ApiProtocolDecoder   paginated API fetch via the protocol registry
"""

import base64
import csv
import datetime
import io
import json
import logging
import math
import re
import sqlite3
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from ..core.errors import ConfigurationError, DecodeError
from ..core.resources import ResourceResolver
from ..models.documents import JsonDocument, LiftOptions
from ..models.sources import (
    ApiSource,
    CsvSource,
    DataFrameSource,
    InputSource,
    JsonSource,
    RelationalSource,
    SourceKind,
    XmlSource,
)
from .xml_support import parse_xml

logger = logging.getLogger(__name__)


class SyntaxDecoder(ABC):
    """Turns one kind of input source into a JSON document."""

    kind: SourceKind

    @abstractmethod
    def decode(self, source: InputSource, options: LiftOptions) -> JsonDocument:
        """Decode ``source``; raise DecodeError on malformed input."""
        pass


# ============================================================================
# JSON / XML
# ============================================================================

class JsonDecoder(SyntaxDecoder):
    kind = SourceKind.JSON

    def decode(self, source: JsonSource, options: LiftOptions) -> JsonDocument:
        return JsonDocument.parse(source.data)


class XmlToJsonDecoder(SyntaxDecoder):
    kind = SourceKind.XML

    def decode(self, source: XmlSource, options: LiftOptions) -> JsonDocument:
        return JsonDocument.from_value(parse_xml(source.data))


# ============================================================================
# CSV
# ============================================================================

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")


def coerce_cell(value: Optional[str], infer_types: bool) -> Any:
    """Convert one CSV cell.

    Without inference the raw text is kept. With inference, ``true``/``false``
    (any case) become booleans, integer text becomes an int, decimal text a
    float, and everything else (including decimals out of float range) the
    trimmed string.
    """
    if not infer_types:
        return value if value is not None else ""
    text = (value or "").strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if _INTEGER_RE.match(text):
        return int(text)
    if _DECIMAL_RE.match(text):
        number = float(text)
        return number if math.isfinite(number) else text
    return text


class CsvToJsonDecoder(SyntaxDecoder):
    kind = SourceKind.CSV

    def decode(self, source: CsvSource, options: LiftOptions) -> JsonDocument:
        try:
            text = source.data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DecodeError(f"CSV is not valid UTF-8: {e}") from e
        infer = options.csv_infer_types
        try:
            rows = list(csv.reader(io.StringIO(text), delimiter=source.delimiter))
        except csv.Error as e:
            raise DecodeError(f"Invalid CSV: {e}") from e
        rows = [row for row in rows if row]

        records: List[Dict[str, Any]] = []
        if source.has_header:
            if not rows:
                return JsonDocument.from_value([])
            header, body = rows[0], rows[1:]
            for row in body:
                records.append({
                    name: coerce_cell(row[i] if i < len(row) else "", infer)
                    for i, name in enumerate(header)
                })
        else:
            width = max((len(row) for row in rows), default=0)
            for row in rows:
                records.append({
                    f"col{i + 1}": coerce_cell(row[i] if i < len(row) else "", infer)
                    for i in range(width)
                })
        logger.debug(f"Decoded {len(records)} CSV records")
        return JsonDocument.from_value(records)


# ============================================================================
# Relational
# ============================================================================

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

Connector = Callable[[RelationalSource], Any]


def sqlite_connector(source: RelationalSource) -> Any:
    """Open ``sqlite:///<path>`` (or ``sqlite:///:memory:``) URLs."""
    prefix = "sqlite:///"
    if not source.url.startswith(prefix):
        raise ConfigurationError(
            f"No connector for {source.url}; pass connect= to RelationalToJsonDecoder"
        )
    return sqlite3.connect(source.url[len(prefix):])


def to_json_value(value: Any) -> Any:
    """Convert a DB-API column value to a JSON-compatible value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return str(value)


class RelationalToJsonDecoder(SyntaxDecoder):
    """Runs a query (or ``SELECT * FROM table``) and returns an array of rows."""

    kind = SourceKind.RELATIONAL

    def __init__(self, connect: Optional[Connector] = None):
        self._connect = connect or sqlite_connector

    @staticmethod
    def build_query(source: RelationalSource) -> str:
        if source.query:
            return source.query
        if not _IDENTIFIER_RE.match(source.table or ""):
            raise ConfigurationError(f"Invalid table name: {source.table!r}")
        return f"SELECT * FROM {source.table}"

    def decode(self, source: RelationalSource, options: LiftOptions) -> JsonDocument:
        query = self.build_query(source)
        fetch_size = max(1, options.relational_fetch_size)
        connection = self._connect(source)
        try:
            cursor = connection.cursor()
            try:
                cursor.arraysize = fetch_size
                cursor.execute(query)
                columns = [column[0] for column in cursor.description or ()]
                records: List[Dict[str, Any]] = []
                while True:
                    batch = cursor.fetchmany(fetch_size)
                    if not batch:
                        break
                    for row in batch:
                        records.append({
                            name: to_json_value(value) for name, value in zip(columns, row)
                        })
            finally:
                cursor.close()
        finally:
            connection.close()
        logger.info(f"Fetched {len(records)} rows from {source.table or 'query'}")
        return JsonDocument.from_value(records)


# ============================================================================
# Dataframes
# ============================================================================

class DataFrameToJsonDecoder(SyntaxDecoder):
    """Serializes a pandas DataFrame (or a session query result) as records.

    ``session`` is any object with ``sql(query)`` and ``table(name)``
    methods, such as a SparkSession. Results exposing ``toPandas()`` are
    converted after the row limit is applied.
    """

    kind = SourceKind.DATAFRAME

    def __init__(self, session: Any = None):
        self._session = session

    def _load(self, source: DataFrameSource) -> Any:
        if source.frame is not None:
            return source.frame
        if self._session is None:
            raise ConfigurationError("Dataframe source needs a frame or a configured session")
        if source.query:
            return self._session.sql(source.query)
        return self._session.table(source.table)

    def decode(self, source: DataFrameSource, options: LiftOptions) -> JsonDocument:
        frame = self._load(source)
        max_rows = options.dataframe_max_rows
        if hasattr(frame, "toPandas"):
            if max_rows is not None:
                frame = frame.limit(max_rows)
            frame = frame.toPandas()
        elif max_rows is not None:
            frame = frame.head(max_rows)
        if not isinstance(frame, pd.DataFrame):
            raise DecodeError(f"Expected a pandas DataFrame, got {type(frame).__name__}")
        records = json.loads(frame.to_json(orient="records", date_format="iso"))
        return JsonDocument.from_value(records)


# ============================================================================
# APIs
# ============================================================================

class ApiProtocolDecoder(SyntaxDecoder):
    """Fetches an API source through the protocol registry."""

    kind = SourceKind.API

    def __init__(self, registry: Any, resolver: ResourceResolver):
        self._registry = registry
        self._resolver = resolver

    def decode(self, source: ApiSource, options: LiftOptions) -> JsonDocument:
        protocol = self._registry.get(source.protocol)
        return protocol.fetch(source.config, self._resolver, options.cancellation_token)
