"""
Fluent construction of lift plans in code.

Usage:
    plan = (
        LiftPlanBuilder()
        .context_inline({"@vocab": "https://example.org/", "id": "@id"})
        .jq(".items")
        .json_schema(schema_bytes, strict=False)
        .id_rule("/id", "https://example.org/thing/{code}")
        .shacl(shapes_ttl)
        .build()
    )
"""

from typing import Any, Callable, List, Optional, Union

from ..core.errors import MissingContextError
from ..models.documents import dump_json
from ..models.plan import (
    ApiInputSpec,
    ContextSpec,
    ExternalFilterStep,
    IdRule,
    InlineContext,
    LiftPlan,
    NativeTransformStep,
    PlanImport,
    PlanMetadata,
    PostStep,
    PreStep,
    ResolvedContext,
    SchemaValidateStep,
    ShaclStep,
    SparqlConstructStep,
    SparqlUpdateStep,
)
from ..models.sources import ApiConfig
from ..steps.transforms import as_callable


def _as_bytes(value: Union[bytes, str, Any]) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return dump_json(value)


class LiftPlanBuilder:
    """Accumulates plan parts in call order; ``build()`` returns an immutable LiftPlan."""

    def __init__(self) -> None:
        self._context: Optional[ContextSpec] = None
        self._pre_steps: List[PreStep] = []
        self._post_steps: List[PostStep] = []
        self._id_rules: List[IdRule] = []
        self._input: Optional[ApiInputSpec] = None
        self._imports: List[PlanImport] = []
        self._metadata: Optional[PlanMetadata] = None

    # Context
    def context_inline(self, document: Any) -> "LiftPlanBuilder":
        self._context = InlineContext(document)
        return self

    def context_ref(self, uri: str) -> "LiftPlanBuilder":
        self._context = ResolvedContext(uri)
        return self

    # Pre-steps
    def transform(self, transform: Any, reference: str = "") -> "LiftPlanBuilder":
        """Add a native transform (callable, JsonTransform or transform class)."""
        fn: Callable[[Any], Any] = as_callable(transform, reference)
        self._pre_steps.append(NativeTransformStep(transform=fn, reference=reference))
        return self

    def jq(self, program: str) -> "LiftPlanBuilder":
        self._pre_steps.append(ExternalFilterStep(program=program))
        return self

    def json_schema(self, schema: Union[bytes, str, Any], strict: bool = True) -> "LiftPlanBuilder":
        self._pre_steps.append(SchemaValidateStep(schema=_as_bytes(schema), strict=strict))
        return self

    # Post-steps
    def shacl(self, shapes: Union[bytes, str]) -> "LiftPlanBuilder":
        self._post_steps.append(ShaclStep(shapes=_as_bytes(shapes)))
        return self

    def sparql_construct(self, query: str) -> "LiftPlanBuilder":
        self._post_steps.append(SparqlConstructStep(query=query))
        return self

    def sparql_update(self, update: str) -> "LiftPlanBuilder":
        self._post_steps.append(SparqlUpdateStep(update=update))
        return self

    # Everything else
    def id_rule(
        self, path: str, template: str, scope: Optional[str] = None, strict: bool = False
    ) -> "LiftPlanBuilder":
        self._id_rules.append(IdRule(path=path, template=template, scope=scope, strict=strict))
        return self

    def api_input(self, protocol: str, config: ApiConfig) -> "LiftPlanBuilder":
        self._input = ApiInputSpec(protocol=protocol, config=config)
        return self

    def import_plan(self, plan_import: PlanImport) -> "LiftPlanBuilder":
        """Record an import. Imports are informational here; use PlanLoader to resolve them."""
        self._imports.append(plan_import)
        return self

    def metadata(self, metadata: PlanMetadata) -> "LiftPlanBuilder":
        self._metadata = metadata
        return self

    def build(self) -> LiftPlan:
        if self._context is None:
            raise MissingContextError(None)
        return LiftPlan(
            context=self._context,
            pre_steps=tuple(self._pre_steps),
            post_steps=tuple(self._post_steps),
            id_rules=tuple(self._id_rules),
            input=self._input,
            imports=tuple(self._imports),
            metadata=self._metadata,
        )
