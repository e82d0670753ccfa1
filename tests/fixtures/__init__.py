"""
Centralized test fixtures for the Semantic Lift test suite.

This package provides reusable fixtures for testing, including:
- JSON-LD contexts and lift plan documents
- JSON Schemas
- XML and CSV sample sources
- Configuration and building-block register samples
- In-memory resolver and scripted HTTP fetcher doubles
- Native transforms importable as ``fixtures.sample_transforms:<name>``

Usage:
    from fixtures import (
        MINIMAL_CONTEXT,
        THING_PLAN_YAML,
        PERSON_SCHEMA,
        SAMPLE_SEMLIFT_CONFIG,
    )

Or use the pytest fixtures in conftest.py which import from here.
"""

from .plan_fixtures import (
    # Contexts
    MINIMAL_CONTEXT,
    THING_CONTEXT,
    PERSON_CONTEXT,

    # Plans
    THING_PLAN_YAML,
    BASE_PLAN_YAML,
    MIDDLE_PLAN_YAML,
    TOP_PLAN_YAML,
    CYCLE_A_YAML,
    CYCLE_B_YAML,
    SELF_IMPORT_YAML,

    # Schemas
    PERSON_SCHEMA,
    SHAPE_EXAMPLE_SCHEMA,

    # Sources
    SAMPLE_XML,
    SAMPLE_CSV,

    # Configuration and registers
    SAMPLE_SEMLIFT_CONFIG,
    BBLOCKS_REGISTER_URL,
    BBLOCKS_REGISTER,
)

from .resolvers import InMemoryResolver, ScriptedFetcher

__all__ = [
    'MINIMAL_CONTEXT',
    'THING_CONTEXT',
    'PERSON_CONTEXT',
    'THING_PLAN_YAML',
    'BASE_PLAN_YAML',
    'MIDDLE_PLAN_YAML',
    'TOP_PLAN_YAML',
    'CYCLE_A_YAML',
    'CYCLE_B_YAML',
    'SELF_IMPORT_YAML',
    'PERSON_SCHEMA',
    'SHAPE_EXAMPLE_SCHEMA',
    'SAMPLE_XML',
    'SAMPLE_CSV',
    'SAMPLE_SEMLIFT_CONFIG',
    'BBLOCKS_REGISTER_URL',
    'BBLOCKS_REGISTER',
    'InMemoryResolver',
    'ScriptedFetcher',
]
