"""
Tests for the pre-step executors: jq runner, JSON Schema validator and
native transforms.

Run with: pytest tests/test_steps.py -v
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from semlift.core.errors import ConfigurationError, ExternalProcessFailure
from semlift.steps import (
    JqProcessor,
    JsonSchemaValidator,
    JsonTransformBuilder,
    as_callable,
    load_transform,
)


@pytest.mark.unit
class TestJqProcessor:
    """The jq binary is mocked at subprocess.run."""

    def test_program_passed_as_argument_and_input_on_stdin(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=b"[1]", stderr=b"")
        with patch("semlift.steps.jq.subprocess.run", return_value=completed) as mock_run:
            output = JqProcessor("/opt/jq").apply(".items", b'{"items": [1]}')

        assert output == b"[1]"
        args, kwargs = mock_run.call_args
        assert args[0] == ["/opt/jq", ".items"]
        assert kwargs["input"] == b'{"items": [1]}'

    def test_non_zero_exit(self):
        completed = subprocess.CompletedProcess(args=[], returncode=3, stdout=b"", stderr=b"syntax error\n")
        with patch("semlift.steps.jq.subprocess.run", return_value=completed):
            with pytest.raises(ExternalProcessFailure) as exc_info:
                JqProcessor().apply(".[", b"{}")
        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == "syntax error"

    def test_missing_binary(self):
        with patch("semlift.steps.jq.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(ExternalProcessFailure, match="command not found") as exc_info:
                JqProcessor("no-such-jq").apply(".", b"{}")
        assert exc_info.value.exit_code == 127

    def test_timeout(self):
        error = subprocess.TimeoutExpired(cmd="jq", timeout=1, stderr=b"")
        with patch("semlift.steps.jq.subprocess.run", side_effect=error):
            with pytest.raises(ExternalProcessFailure, match="timed out"):
                JqProcessor(timeout=1).apply(".", b"{}")


@pytest.mark.unit
class TestJsonSchemaValidator:

    def test_valid_instance(self, person_schema):
        result = JsonSchemaValidator().validate(person_schema, {"id": "p1", "name": "Ada"})
        assert result.valid
        assert result.errors == []

    def test_errors_are_sorted_and_located(self, person_schema):
        result = JsonSchemaValidator().validate(person_schema, b'{"name": 5}')
        assert not result.valid
        assert result.errors == [
            "$: 'id' is a required property",
            "$.name: 5 is not of type 'string'",
        ]

    def test_declared_draft_is_honoured(self):
        schema = {"$schema": "http://json-schema.org/draft-04/schema#", "maximum": 5, "exclusiveMaximum": True}
        result = JsonSchemaValidator().validate(schema, 5)
        assert not result.valid

    def test_invalid_schema(self):
        with pytest.raises(ConfigurationError, match="Invalid JSON Schema"):
            JsonSchemaValidator().validate({"type": 12}, {})

    def test_invalid_schema_json(self):
        with pytest.raises(ConfigurationError, match="Invalid JSON schema"):
            JsonSchemaValidator().validate(b"{nope", {})


@pytest.mark.unit
class TestTransformLoading:
    """Transforms referenced as module:attribute."""

    def test_function(self):
        transform = load_transform("fixtures.sample_transforms:add_flag")
        assert transform({"a": 1}) == {"a": 1, "transformed": True}

    def test_class_with_apply(self):
        transform = load_transform("fixtures.sample_transforms:UppercaseName")
        assert transform({"name": "ada"}) == {"name": "ADA"}

    def test_factory(self):
        transform = load_transform("fixtures.sample_transforms.WrapFactory")
        assert transform(1) == {"wrapped": 1}

    def test_missing_module(self):
        with pytest.raises(ConfigurationError, match="Cannot import transform module"):
            load_transform("no_such_module_xyz:fn")

    def test_missing_attribute(self):
        with pytest.raises(ConfigurationError, match="not found"):
            load_transform("fixtures.sample_transforms:missing")

    def test_not_callable(self):
        with pytest.raises(ConfigurationError, match="is not a JSON transform"):
            load_transform("fixtures.sample_transforms:NOT_A_TRANSFORM")

    def test_malformed_reference(self):
        with pytest.raises(ConfigurationError, match="module:attribute"):
            load_transform("nodots")

    def test_object_with_apply(self):
        target = MagicMock(spec=["apply"])
        target.apply.return_value = {"ok": True}
        assert as_callable(target)({}) == {"ok": True}


@pytest.mark.unit
class TestJsonTransformBuilder:

    def test_operations_run_in_order(self):
        transform = (
            JsonTransformBuilder()
            .default("/status", "active")
            .move("/identifier", "/code")
            .set("/meta/source", "test")
            .remove("/internal")
            .build()
        )
        source = {"identifier": "abc", "internal": 1, "status": None}
        assert transform(source) == {"status": "active", "code": "abc", "meta": {"source": "test"}}
        assert source == {"identifier": "abc", "internal": 1, "status": None}

    def test_default_keeps_existing_value(self):
        transform = JsonTransformBuilder().default("/status", "active").build()
        assert transform({"status": "retired"}) == {"status": "retired"}

    def test_map_array_with_nested_builder(self):
        transform = JsonTransformBuilder().map_array(
            "/items", JsonTransformBuilder().remove("/internal")
        ).build()
        assert transform({"items": [{"internal": 1, "v": 2}, {"v": 3}]}) == {"items": [{"v": 2}, {"v": 3}]}

    def test_map_array_ignores_non_arrays(self):
        transform = JsonTransformBuilder().map_array("/items", lambda item: item).build()
        assert transform({"items": "x"}) == {"items": "x"}

    def test_built_transform_is_a_json_transform(self):
        transform = JsonTransformBuilder().set("/a", 1).build()
        assert as_callable(transform)({}) == {"a": 1}
