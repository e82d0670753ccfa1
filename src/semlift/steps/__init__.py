"""Pre-step executors: jq runner, JSON Schema validator and native transforms."""

from .jq import JqProcessor
from .schema import JsonSchemaValidator, JsonSchemaValidationResult
from .transforms import (
    JsonTransform,
    JsonTransformBuilder,
    OperationTransform,
    as_callable,
    load_transform,
)

__all__ = [
    "JqProcessor",
    "JsonSchemaValidator",
    "JsonSchemaValidationResult",
    "JsonTransform",
    "JsonTransformBuilder",
    "OperationTransform",
    "as_callable",
    "load_transform",
]
