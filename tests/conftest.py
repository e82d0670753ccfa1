"""
Shared pytest setup for the semlift suite.

Markers:
    pytest -m unit          # Fast unit tests
    pytest -m integration   # Integration tests (rdflib/pyshacl end to end)
    pytest -m slow          # Tests that take >1s
    pytest -m security      # Security-related tests (unsafe XML, identifiers)
    pytest -m resilience    # Retry, stale-cache fallback, cancellation

Sample contexts, plans, schemas and resolver doubles live in tests/fixtures/.
"""

import pytest
import json
import sys
import os

# Retry backoff must not sleep in tests; patched before semlift imports tenacity.
import tenacity.nap
tenacity.nap.sleep = lambda seconds: None

src_dir = os.path.join(os.path.dirname(__file__), '..', 'src')
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

tests_dir = os.path.dirname(__file__)
if tests_dir not in sys.path:
    sys.path.insert(1, tests_dir)

from fixtures import (
    # Contexts
    MINIMAL_CONTEXT,
    THING_CONTEXT,

    # Plans
    THING_PLAN_YAML,

    # Schemas
    PERSON_SCHEMA,
    SHAPE_EXAMPLE_SCHEMA,

    # Config fixtures
    SAMPLE_SEMLIFT_CONFIG,

    # Doubles
    InMemoryResolver,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Integration tests requiring setup")
    config.addinivalue_line("markers", "slow: Tests that take more than 1 second")
    config.addinivalue_line("markers", "security: Security-related tests (unsafe XML, identifiers)")
    config.addinivalue_line("markers", "resilience: Retry, stale-cache fallback and cancellation tests")


# =============================================================================
# Context and schema fixtures
# =============================================================================

@pytest.fixture
def minimal_context():
    """Context with @vocab and id -> @id."""
    return dict(MINIMAL_CONTEXT)


@pytest.fixture
def thing_context():
    """Context document wrapped in {"@context": ...}."""
    return json.loads(json.dumps(THING_CONTEXT))


@pytest.fixture
def person_schema():
    """Object schema requiring id."""
    return json.loads(json.dumps(PERSON_SCHEMA))


@pytest.fixture
def shape_example_schema():
    """Schema with pattern, numeric bounds and an enum."""
    return json.loads(json.dumps(SHAPE_EXAMPLE_SCHEMA))


# =============================================================================
# Plan fixtures
# =============================================================================

@pytest.fixture
def plan_dir(tmp_path):
    """Directory for plan documents and the files they reference."""
    directory = tmp_path / "plans"
    directory.mkdir()
    return directory


@pytest.fixture
def thing_plan_file(plan_dir):
    """Plan with an inline context and a context-level id rule."""
    plan_file = plan_dir / "things.yaml"
    plan_file.write_text(THING_PLAN_YAML)
    return str(plan_file)


# =============================================================================
# Resolver and configuration fixtures
# =============================================================================

@pytest.fixture
def memory_resolver():
    """Empty in-memory resolver recording every request."""
    return InMemoryResolver()


@pytest.fixture
def cache_dir(tmp_path):
    """Isolated cache directory."""
    directory = tmp_path / "cache"
    return directory


@pytest.fixture
def sample_config():
    """Sample configuration dictionary."""
    return json.loads(json.dumps(SAMPLE_SEMLIFT_CONFIG))


@pytest.fixture
def temp_config_file(tmp_path, sample_config):
    """Create a temporary configuration file for testing."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(sample_config, indent=2))
    return str(config_file)
