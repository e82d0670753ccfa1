"""
OGC Building Blocks plan provider (``ogc-bblocks``).

Reads the building-blocks register JSON and turns a block into a lift plan:
its ``ldContext`` becomes a referenced context and, when the block publishes
a JSON schema, a strict schema-validate pre-step is added.

Usage:
    provider = OgcBblocksProvider(resolver)
    registry = DefaultPlanRegistry([provider])
    plan = registry.resolve("ogc-bblocks", "ogc.geo.features.feature")

    summary = provider.validate_examples("ogc.geo.features.feature", strict=False)
    print(f"{summary.passed}/{summary.total} examples behave as expected")
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ...core.errors import PlanErrorKind, PlanResolutionError, ValidationFailure
from ...core.resources import ResourceResolver
from ...models.plan import LiftPlan, PlanMetadata, ResolvedContext, SchemaValidateStep
from ...steps.schema import JsonSchemaValidator
from ..base import PlanProvider, unknown_identifier

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://opengeospatial.github.io/bblocks/register.json"


@dataclass(frozen=True)
class BuildingBlock:
    """One entry of the ``bblocks`` array."""
    item_identifier: str
    name: str
    group: Optional[str] = None
    scope: Optional[str] = None
    item_class: Optional[str] = None
    ld_context: Optional[str] = None
    schema_json: Optional[str] = None
    schema_yaml: Optional[str] = None
    documentation: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BuildingBlock':
        identifier = data.get("itemIdentifier")
        if not identifier:
            raise PlanResolutionError(PlanErrorKind.OTHER, "Building block without itemIdentifier")
        schema = data.get("schema") or {}
        docs = data.get("documentation") or {}
        documentation = {
            key: str(value["url"])
            for key, value in docs.items()
            if isinstance(value, Mapping) and value.get("url")
        }
        return cls(
            item_identifier=str(identifier),
            name=str(data.get("name") or "Unknown"),
            group=data.get("group"),
            scope=data.get("scope"),
            item_class=data.get("itemClass"),
            ld_context=data.get("ldContext"),
            schema_json=schema.get("application/json") if isinstance(schema, Mapping) else None,
            schema_yaml=schema.get("application/yaml") if isinstance(schema, Mapping) else None,
            documentation=documentation,
        )


@dataclass(frozen=True)
class ExampleValidationResult:
    url: str
    expected_to_fail: bool
    passed: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class BlockValidationSummary:
    block_id: str
    results: List[ExampleValidationResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed


class OgcBblocksProvider(PlanProvider):
    """Plan provider backed by an OGC building-blocks register."""

    def __init__(self, resolver: ResourceResolver, registry_url: str = DEFAULT_REGISTRY_URL):
        self._resolver = resolver
        self.registry_url = registry_url

    @property
    def id(self) -> str:
        return "ogc-bblocks"

    def resolve(self, identifier: str) -> LiftPlan:
        block = self.find_by_identifier(identifier)
        if not block.ld_context:
            raise PlanResolutionError(
                PlanErrorKind.OTHER, f"Building block lacks ldContext: {block.item_identifier}"
            )
        pre_steps = []
        if block.schema_json:
            pre_steps.append(SchemaValidateStep(schema=self._resolver.resolve(block.schema_json), strict=True))
        logger.info(f"Resolved building block {block.item_identifier}")
        return LiftPlan(
            context=ResolvedContext(block.ld_context),
            pre_steps=tuple(pre_steps),
            metadata=PlanMetadata(title=block.name, profile=block.item_identifier),
        )

    def _load_registry(self) -> Dict[str, Any]:
        try:
            root = json.loads(self._resolver.resolve(self.registry_url).decode("utf-8"))
        except ValueError as e:
            raise PlanResolutionError(PlanErrorKind.OTHER, f"Invalid register {self.registry_url}: {e}")
        if not isinstance(root, dict):
            raise PlanResolutionError(PlanErrorKind.OTHER, f"Register {self.registry_url} is not an object")
        return root

    def list_blocks(self) -> List[BuildingBlock]:
        items = self._load_registry().get("bblocks")
        if items is None:
            return []
        if not isinstance(items, list):
            raise PlanResolutionError(PlanErrorKind.OTHER, "Register bblocks is not an array")
        return [BuildingBlock.from_dict(item) for item in items]

    def find_by_identifier(self, identifier: str) -> BuildingBlock:
        """Case-insensitive lookup by ``itemIdentifier``."""
        wanted = identifier.lower()
        for block in self.list_blocks():
            if block.item_identifier.lower() == wanted:
                return block
        raise unknown_identifier(identifier)

    def find_by_name(self, query: str) -> List[BuildingBlock]:
        """Blocks whose name contains ``query`` (case-insensitive)."""
        needle = query.lower()
        return [block for block in self.list_blocks() if needle in block.name.lower()]

    def validate_examples(self, identifier: str, strict: bool = True) -> BlockValidationSummary:
        """Validate the register's examples for a block against its JSON schema.

        Examples flagged ``requireFail`` pass when validation fails. With
        ``strict`` any unexpected outcome raises ValidationFailure.
        """
        block = self.find_by_identifier(identifier)
        if not block.schema_json:
            raise PlanResolutionError(
                PlanErrorKind.OTHER, f"Building block lacks JSON schema: {block.item_identifier}"
            )
        schema = self._resolver.resolve(block.schema_json)
        report_url = self._load_registry().get("validationReportJson")
        if not report_url:
            raise PlanResolutionError(PlanErrorKind.OTHER, "Register missing validationReportJson")
        report = json.loads(self._resolver.resolve(report_url).decode("utf-8"))

        validator = JsonSchemaValidator()
        results: List[ExampleValidationResult] = []
        block_report = (report.get("bblocks") or {}).get(block.item_identifier) or {}
        for item in block_report.get("items") or []:
            source = item.get("source") or {}
            url = source.get("url")
            if not url:
                continue
            expected_to_fail = bool(source.get("requireFail", False))
            outcome = validator.validate(schema, self._resolver.resolve(url))
            results.append(ExampleValidationResult(
                url=url,
                expected_to_fail=expected_to_fail,
                passed=(not outcome.valid) if expected_to_fail else outcome.valid,
                errors=outcome.errors,
            ))

        summary = BlockValidationSummary(block_id=block.item_identifier, results=results)
        logger.info(f"{block.item_identifier}: {summary.passed}/{summary.total} examples passed")
        if strict and summary.failed:
            raise ValidationFailure(
                f"Building block validation failed for {block.item_identifier}: "
                f"{summary.failed}/{summary.total} examples"
            )
        return summary
