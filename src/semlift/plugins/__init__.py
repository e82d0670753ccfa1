"""
Plan provider plugins.

Providers resolve plan imports written as ``{provider: <id>, id: <identifier>}``.
Built-in providers live in plugins.builtin.
"""

from .base import (
    LOCAL_PROVIDER_ID,
    PlanProvider,
    PlanResolver,
    PlanRegistry,
    DefaultPlanRegistry,
    CompositePlanRegistry,
)
from .builtin import OgcBblocksProvider

__all__ = [
    "LOCAL_PROVIDER_ID",
    "PlanProvider",
    "PlanResolver",
    "PlanRegistry",
    "DefaultPlanRegistry",
    "CompositePlanRegistry",
    "OgcBblocksProvider",
]
