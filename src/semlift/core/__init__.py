"""
Core building blocks shared by every layer.

This package provides:
- The exception hierarchy (errors)
- The JSON Pointer engine (json_pointer)
- Cancellation tokens (cancellation)
- Resource resolution and the on-disk HTTP cache (resources, cache)
"""

from .errors import (
    SemliftError,
    ConfigurationError,
    MissingContextError,
    ValidationFailure,
    SchemaViolation,
    IdentifierRuleViolation,
    StrictValidationFailure,
    ImportCycleError,
    ExternalProcessFailure,
    FetchError,
    ResourceNotFoundError,
    ProtocolError,
    DecodeError,
    PlanResolutionError,
    PlanErrorKind,
)
from .cancellation import (
    CancellationToken,
    SimpleCancellationToken,
    OperationCancelledException,
)
from .resources import ResourceResolver, DefaultResourceResolver
from .cache import CacheConfig, CachingResourceResolver

__all__ = [
    "SemliftError",
    "ConfigurationError",
    "MissingContextError",
    "ValidationFailure",
    "SchemaViolation",
    "IdentifierRuleViolation",
    "StrictValidationFailure",
    "ImportCycleError",
    "ExternalProcessFailure",
    "FetchError",
    "ResourceNotFoundError",
    "ProtocolError",
    "DecodeError",
    "PlanResolutionError",
    "PlanErrorKind",
    "CancellationToken",
    "SimpleCancellationToken",
    "OperationCancelledException",
    "ResourceResolver",
    "DefaultResourceResolver",
    "CacheConfig",
    "CachingResourceResolver",
]
