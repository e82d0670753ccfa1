"""Lift plan loading, merging and building."""

from .builder import LiftPlanBuilder
from .loader import PlanLoader, location_key, resolve_reference
from .merge import context_elements, merge_contexts, merge_metadata, merge_plan

__all__ = [
    "LiftPlanBuilder",
    "PlanLoader",
    "location_key",
    "resolve_reference",
    "context_elements",
    "merge_contexts",
    "merge_metadata",
    "merge_plan",
]
