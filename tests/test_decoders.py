"""
Tests for the syntax decoders and the decoder registry.

Run with: pytest tests/test_decoders.py -v
"""

import sqlite3
from unittest.mock import MagicMock

import pandas as pd
import pytest

from fixtures import SAMPLE_CSV, SAMPLE_XML, InMemoryResolver
from semlift.core.errors import ConfigurationError, DecodeError
from semlift.formats import (
    CsvToJsonDecoder,
    DataFrameToJsonDecoder,
    DecoderRegistry,
    JsonDecoder,
    RelationalToJsonDecoder,
    XmlToJsonDecoder,
    coerce_cell,
    create_default_decoder_registry,
)
from semlift.models import (
    ApiSource,
    CsvSource,
    DataFrameSource,
    JsonDocument,
    JsonSource,
    LiftOptions,
    OgcApiFeaturesConfig,
    RelationalSource,
    SourceKind,
    XmlSource,
)


@pytest.mark.unit
class TestJsonDecoder:

    def test_valid_json_passes_through(self):
        document = JsonDecoder().decode(JsonSource(b'{"a": [1, 2]}'), LiftOptions())
        assert document.value == {"a": [1, 2]}

    def test_invalid_json_raises_decode_error(self):
        with pytest.raises(DecodeError, match="Invalid JSON"):
            JsonDecoder().decode(JsonSource(b'{"a": '), LiftOptions())


@pytest.mark.unit
class TestXmlDecoder:

    def test_tree_mapping(self):
        """Attributes, text, repeated children and mixed text map as documented."""
        document = XmlToJsonDecoder().decode(XmlSource(SAMPLE_XML), LiftOptions())
        assert document.value == {
            "root": {
                "@id": "1",
                "name": "Alpha",
                "value": {"@unit": "kg", "#text": "10"},
                "tag": ["a", "b"],
            }
        }

    def test_namespaces_reduced_to_local_names(self):
        xml = b'<f:feature xmlns:f="urn:f" f:code="x"><f:name>N</f:name></f:feature>'
        document = XmlToJsonDecoder().decode(XmlSource(xml), LiftOptions())
        assert document.value == {"feature": {"@code": "x", "name": "N"}}

    def test_malformed_xml(self):
        with pytest.raises(DecodeError, match="Invalid XML"):
            XmlToJsonDecoder().decode(XmlSource(b"<a><b></a>"), LiftOptions())

    @pytest.mark.security
    def test_entity_expansion_rejected(self):
        xml = (
            b'<?xml version="1.0"?><!DOCTYPE r [<!ENTITY e "boom">]>'
            b"<r>&e;&e;</r>"
        )
        with pytest.raises(DecodeError, match="unsafe XML"):
            XmlToJsonDecoder().decode(XmlSource(xml), LiftOptions())


@pytest.mark.unit
class TestCsvDecoder:

    def test_header_and_type_inference(self):
        document = CsvToJsonDecoder().decode(CsvSource(SAMPLE_CSV), LiftOptions())
        assert document.value == [
            {"id": 1, "name": "Ada", "active": True, "score": 9.5},
            {"id": 2, "name": "Grace", "active": False, "score": 7},
        ]

    def test_inference_disabled_keeps_text(self):
        options = LiftOptions(csv_infer_types=False)
        document = CsvToJsonDecoder().decode(CsvSource(SAMPLE_CSV), options)
        assert document.value[0] == {"id": "1", "name": "Ada", "active": "true", "score": "9.5"}

    def test_no_header_uses_positional_names(self):
        source = CsvSource(b"a;1\nb;2;extra\n", has_header=False, delimiter=";")
        document = CsvToJsonDecoder().decode(source, LiftOptions())
        assert document.value == [
            {"col1": "a", "col2": 1, "col3": ""},
            {"col1": "b", "col2": 2, "col3": "extra"},
        ]

    def test_empty_input(self):
        assert CsvToJsonDecoder().decode(CsvSource(b""), LiftOptions()).value == []

    def test_short_rows_padded(self):
        document = CsvToJsonDecoder().decode(CsvSource(b"a,b\n1\n"), LiftOptions())
        assert document.value == [{"a": 1, "b": ""}]

    @pytest.mark.parametrize("text,expected", [
        ("TRUE", True),
        (" 42 ", 42),
        ("-3.5e2", -350.0),
        ("12abc", "12abc"),
        ("", ""),
        ("1e400", "1e400"),
        ("-1e400", "-1e400"),
    ])
    def test_coerce_cell(self, text, expected):
        assert coerce_cell(text, True) == expected

    def test_out_of_range_decimal_stays_standard_json(self):
        document = CsvToJsonDecoder().decode(CsvSource(b"big\n1e400\n"), LiftOptions())
        assert document.value == [{"big": "1e400"}]
        assert b"Infinity" not in document.data


@pytest.mark.unit
class TestRelationalDecoder:

    @pytest.fixture
    def db_url(self, tmp_path):
        path = tmp_path / "people.db"
        connection = sqlite3.connect(str(path))
        connection.execute("CREATE TABLE people (id INTEGER, name TEXT, photo BLOB)")
        connection.executemany(
            "INSERT INTO people VALUES (?, ?, ?)",
            [(1, "Ada", b"\x01\x02"), (2, "Grace", None), (3, "Linus", None)],
        )
        connection.commit()
        connection.close()
        return f"sqlite:///{path}"

    def test_table_rows_in_batches(self, db_url):
        options = LiftOptions(relational_fetch_size=2)
        document = RelationalToJsonDecoder().decode(RelationalSource(url=db_url, table="people"), options)
        assert [row["name"] for row in document.value] == ["Ada", "Grace", "Linus"]
        assert document.value[0]["photo"] == "AQI="
        assert document.value[1]["photo"] is None

    def test_query(self, db_url):
        source = RelationalSource(url=db_url, query="SELECT id FROM people WHERE id > 1 ORDER BY id")
        document = RelationalToJsonDecoder().decode(source, LiftOptions())
        assert document.value == [{"id": 2}, {"id": 3}]

    @pytest.mark.security
    def test_table_name_must_be_identifier(self, db_url):
        source = RelationalSource(url=db_url, table="people; DROP TABLE people")
        with pytest.raises(ConfigurationError, match="Invalid table name"):
            RelationalToJsonDecoder().decode(source, LiftOptions())

    def test_exactly_one_of_table_or_query(self):
        with pytest.raises(ConfigurationError, match="exactly one"):
            RelationalSource(url="sqlite:///:memory:", table="t", query="SELECT 1")
        with pytest.raises(ConfigurationError, match="exactly one"):
            RelationalSource(url="sqlite:///:memory:")

    def test_custom_connector(self):
        cursor = MagicMock()
        cursor.description = [("id",), ("label",)]
        cursor.fetchmany.side_effect = [[(1, "x")], []]
        connection = MagicMock()
        connection.cursor.return_value = cursor
        decoder = RelationalToJsonDecoder(connect=lambda source: connection)

        document = decoder.decode(RelationalSource(url="postgresql://db/x", table="t"), LiftOptions())

        assert document.value == [{"id": 1, "label": "x"}]
        cursor.execute.assert_called_once_with("SELECT * FROM t")
        cursor.close.assert_called_once()
        connection.close.assert_called_once()

    def test_unknown_url_without_connector(self):
        with pytest.raises(ConfigurationError, match="No connector"):
            RelationalToJsonDecoder().decode(
                RelationalSource(url="postgresql://db/x", table="t"), LiftOptions()
            )


@pytest.mark.unit
class TestDataFrameDecoder:

    def test_pandas_frame(self):
        frame = pd.DataFrame({"id": [1, 2], "name": ["a", "b"]})
        document = DataFrameToJsonDecoder().decode(DataFrameSource(frame=frame), LiftOptions())
        assert document.value == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]

    def test_max_rows(self):
        frame = pd.DataFrame({"id": [1, 2, 3]})
        options = LiftOptions(dataframe_max_rows=2)
        document = DataFrameToJsonDecoder().decode(DataFrameSource(frame=frame), options)
        assert document.value == [{"id": 1}, {"id": 2}]

    def test_session_query(self):
        spark_frame = MagicMock()
        spark_frame.limit.return_value = spark_frame
        spark_frame.toPandas.return_value = pd.DataFrame({"id": [7]})
        session = MagicMock()
        session.sql.return_value = spark_frame

        decoder = DataFrameToJsonDecoder(session=session)
        document = decoder.decode(DataFrameSource(query="SELECT id FROM t"), LiftOptions(dataframe_max_rows=5))

        assert document.value == [{"id": 7}]
        session.sql.assert_called_once_with("SELECT id FROM t")
        spark_frame.limit.assert_called_once_with(5)

    def test_table_without_session(self):
        with pytest.raises(ConfigurationError, match="session"):
            DataFrameToJsonDecoder().decode(DataFrameSource(table="t"), LiftOptions())


@pytest.mark.unit
class TestDecoderRegistry:

    def test_dispatch_by_kind(self):
        registry = create_default_decoder_registry(InMemoryResolver(), api_registry=MagicMock())
        document = registry.decode(JsonSource(b"[1]"), LiftOptions())
        assert document.value == [1]

    def test_api_source_goes_through_protocol_registry(self):
        protocol = MagicMock()
        protocol.fetch.return_value = JsonDocument.from_value([{"id": 1}])
        api_registry = MagicMock()
        api_registry.get.return_value = protocol
        resolver = InMemoryResolver()
        registry = create_default_decoder_registry(resolver, api_registry=api_registry)
        config = OgcApiFeaturesConfig(base_url="https://api.example", collection="lakes")

        document = registry.decode(ApiSource("ogc", config), LiftOptions())

        assert document.value == [{"id": 1}]
        api_registry.get.assert_called_once_with("ogc")
        protocol.fetch.assert_called_once_with(config, resolver, None)

    def test_missing_decoder(self):
        registry = DecoderRegistry([JsonDecoder()])
        with pytest.raises(ConfigurationError, match="csv"):
            registry.decode(CsvSource(b"a\n1\n"), LiftOptions())

    def test_each_kind_registered_once(self):
        registry = create_default_decoder_registry(InMemoryResolver(), api_registry=MagicMock())
        for kind in SourceKind:
            assert registry._decoders[kind].kind is kind
