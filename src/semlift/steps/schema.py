"""
JSON Schema validation.

Schemas without ``$schema`` are checked against draft 2019-09; a declared
``$schema`` selects the matching draft.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Union

from jsonschema import Draft201909Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonSchemaValidationResult:
    """Validation outcome with one message per violation."""
    valid: bool
    errors: List[str] = field(default_factory=list)


def _load(value: Union[bytes, str, Any], what: str) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid JSON {what}: {e}")
    return value


class JsonSchemaValidator:
    """Validates JSON instances against a JSON Schema."""

    def validate(self, schema: Union[bytes, str, Any], instance: Union[bytes, str, Any]) -> JsonSchemaValidationResult:
        schema_value = _load(schema, "schema")
        instance_value = _load(instance, "instance")

        validator_cls = validator_for(schema_value, default=Draft201909Validator)
        try:
            validator_cls.check_schema(schema_value)
        except SchemaError as e:
            raise ConfigurationError(f"Invalid JSON Schema: {e.message}")

        validator = validator_cls(schema_value)
        errors = sorted(validator.iter_errors(instance_value), key=lambda e: (e.json_path, e.message))
        messages = [f"{error.json_path}: {error.message}" for error in errors]
        return JsonSchemaValidationResult(valid=not messages, errors=messages)
