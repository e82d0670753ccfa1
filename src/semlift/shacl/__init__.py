"""JSON Schema to SHACL shape compiler."""

from .generator import JsonSchemaToShacl, ShaclConfig, context_prefixes, context_terms, sanitize

__all__ = [
    "JsonSchemaToShacl",
    "ShaclConfig",
    "context_prefixes",
    "context_terms",
    "sanitize",
]
