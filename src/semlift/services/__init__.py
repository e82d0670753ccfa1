"""Lifting pipeline engine."""

from .lifter import (
    DefaultSemanticLifter,
    SemanticLifter,
    create_default_lifter,
    embed_context,
    expand_template,
    unwrap_context,
)

__all__ = [
    "DefaultSemanticLifter",
    "SemanticLifter",
    "create_default_lifter",
    "embed_context",
    "expand_template",
    "unwrap_context",
]
