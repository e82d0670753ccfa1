"""
Tests for the OGC building-blocks plan provider.

The register, schemas and examples are served from an InMemoryResolver.

Run with: pytest tests/test_ogc_bblocks.py -v
"""

import json

import pytest

from fixtures import BBLOCKS_REGISTER, BBLOCKS_REGISTER_URL, InMemoryResolver
from semlift.core.errors import PlanErrorKind, PlanResolutionError, ValidationFailure
from semlift.models import LiftPlan, PlanMetadata, ResolvedContext, SchemaValidateStep
from semlift.plan import PlanLoader
from semlift.plugins import DefaultPlanRegistry, OgcBblocksProvider

FEATURE_SCHEMA_URL = "https://bblocks.example/feature/schema.json"
FEATURE_SCHEMA = {"type": "object", "required": ["type"], "properties": {"type": {"const": "Feature"}}}
REPORT_URL = "https://bblocks.example/report.json"


@pytest.fixture
def resolver():
    return InMemoryResolver({
        BBLOCKS_REGISTER_URL: json.dumps(BBLOCKS_REGISTER),
        FEATURE_SCHEMA_URL: json.dumps(FEATURE_SCHEMA),
    })


@pytest.fixture
def provider(resolver):
    return OgcBblocksProvider(resolver, registry_url=BBLOCKS_REGISTER_URL)


@pytest.mark.unit
class TestRegisterLookup:

    def test_list_blocks(self, provider):
        blocks = provider.list_blocks()
        assert [b.item_identifier for b in blocks] == [
            "ogc.geo.features.feature",
            "ogc.geo.common.data_types.geometry",
            "ogc.api.no-context",
        ]
        feature = blocks[0]
        assert feature.schema_json == FEATURE_SCHEMA_URL
        assert feature.documentation == {"json-full": "https://bblocks.example/feature/doc.json"}

    def test_find_by_identifier_ignores_case(self, provider):
        assert provider.find_by_identifier("OGC.Geo.Features.Feature").name == "Feature"

    def test_find_by_name(self, provider):
        assert [b.name for b in provider.find_by_name("feature")] == ["Feature", "Feature Collection API"]

    def test_unknown_identifier(self, provider):
        with pytest.raises(PlanResolutionError) as exc_info:
            provider.find_by_identifier("ogc.missing")
        assert exc_info.value.is_unknown

    def test_invalid_register(self):
        provider = OgcBblocksProvider(InMemoryResolver({"r": b"not json"}), registry_url="r")
        with pytest.raises(PlanResolutionError, match="Invalid register") as exc_info:
            provider.list_blocks()
        assert exc_info.value.kind == PlanErrorKind.OTHER

    def test_register_without_blocks(self):
        provider = OgcBblocksProvider(InMemoryResolver({"r": b"{}"}), registry_url="r")
        assert provider.list_blocks() == []


@pytest.mark.unit
class TestResolve:

    def test_block_with_schema(self, provider):
        plan = provider.resolve("ogc.geo.features.feature")

        assert plan.context == ResolvedContext("https://bblocks.example/feature/context.jsonld")
        assert plan.pre_steps == (SchemaValidateStep(schema=json.dumps(FEATURE_SCHEMA).encode(), strict=True),)
        assert plan.metadata == PlanMetadata(title="Feature", profile="ogc.geo.features.feature")

    def test_block_without_schema(self, provider):
        plan = provider.resolve("ogc.geo.common.data_types.geometry")
        assert plan.pre_steps == ()

    def test_block_without_context_is_not_unknown(self, provider):
        with pytest.raises(PlanResolutionError, match="lacks ldContext") as exc_info:
            provider.resolve("ogc.api.no-context")
        assert not exc_info.value.is_unknown

    def test_plan_import_through_registry(self, resolver, provider):
        registry = DefaultPlanRegistry([provider])
        document = """
imports:
  - provider: ogc-bblocks
    id: ogc.geo.features.feature
context:
  inline: {local: "https://example.com/local#"}
"""
        plan = PlanLoader(resolver, registry).load(document)

        assert isinstance(plan, LiftPlan)
        assert plan.context.document == {"@context": [
            "https://bblocks.example/feature/context.jsonld",
            {"local": "https://example.com/local#"},
        ]}
        assert len(plan.pre_steps) == 1
        assert plan.metadata.title == "Feature"


@pytest.mark.unit
class TestValidateExamples:
    """Examples flagged requireFail pass when validation fails."""

    @pytest.fixture
    def with_examples(self, resolver):
        resolver.add(REPORT_URL, json.dumps({
            "bblocks": {
                "ogc.geo.features.feature": {
                    "items": [
                        {"source": {"url": "https://bblocks.example/ex/good.json"}},
                        {"source": {"url": "https://bblocks.example/ex/bad.json", "requireFail": True}},
                        {"source": {}},
                    ]
                }
            }
        }))
        resolver.add("https://bblocks.example/ex/good.json", b'{"type": "Feature"}')
        resolver.add("https://bblocks.example/ex/bad.json", b'{"type": "Other"}')
        return resolver

    def test_all_examples_behave(self, with_examples, provider):
        summary = provider.validate_examples("ogc.geo.features.feature")
        assert (summary.total, summary.passed, summary.failed) == (2, 2, 0)
        assert summary.results[1].expected_to_fail
        assert summary.results[1].errors

    def test_unexpected_outcome_strict(self, with_examples, provider):
        with_examples.add("https://bblocks.example/ex/good.json", b'{"type": "Broken"}')
        with pytest.raises(ValidationFailure, match="1/2 examples"):
            provider.validate_examples("ogc.geo.features.feature", strict=True)

    def test_unexpected_outcome_lenient(self, with_examples, provider):
        with_examples.add("https://bblocks.example/ex/bad.json", b'{"type": "Feature"}')
        summary = provider.validate_examples("ogc.geo.features.feature", strict=False)
        assert summary.failed == 1
        assert not summary.results[1].passed

    def test_block_without_schema(self, provider):
        with pytest.raises(PlanResolutionError, match="lacks JSON schema"):
            provider.validate_examples("ogc.geo.common.data_types.geometry")
