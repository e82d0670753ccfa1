"""
Lift plan model.

A LiftPlan is an immutable value: a JSON-LD context, ordered pre-steps run
on the JSON document, identifier rules, ordered post-steps run on the RDF
dataset, an optional API input specification, imports and metadata. Plans
are usually produced by semlift.plan.PlanLoader or LiftPlanBuilder.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Optional, Tuple, Union

from ..constants import StepTypes
from ..core.errors import ConfigurationError
from .sources import ApiConfig


# ============================================================================
# Context
# ============================================================================

@dataclass(frozen=True)
class InlineContext:
    """A JSON-LD context given inline (object, array or ``{"@context": ...}``)."""
    document: Any


@dataclass(frozen=True)
class ResolvedContext:
    """A JSON-LD context fetched through the resource resolver."""
    uri: str


ContextSpec = Union[InlineContext, ResolvedContext]


# ============================================================================
# Steps
# ============================================================================

class StepKind(str, Enum):
    """Pre- and post-step variants."""
    NATIVE_TRANSFORM = StepTypes.NATIVE_TRANSFORM
    JQ = StepTypes.JQ
    JSON_SCHEMA = StepTypes.JSON_SCHEMA
    SHACL = StepTypes.SHACL
    SPARQL_CONSTRUCT = StepTypes.SPARQL_CONSTRUCT
    SPARQL_UPDATE = StepTypes.SPARQL_UPDATE


@dataclass(frozen=True)
class NativeTransformStep:
    """Pure JSON-to-JSON Python callable."""
    kind: ClassVar[StepKind] = StepKind.NATIVE_TRANSFORM
    transform: Callable[[Any], Any] = field(compare=False)
    reference: str = ""


@dataclass(frozen=True)
class ExternalFilterStep:
    """jq program run by the external interpreter."""
    kind: ClassVar[StepKind] = StepKind.JQ
    program: str


@dataclass(frozen=True)
class SchemaValidateStep:
    """JSON Schema validation; strict failures abort the lift."""
    kind: ClassVar[StepKind] = StepKind.JSON_SCHEMA
    schema: bytes
    strict: bool = True


@dataclass(frozen=True)
class ShaclStep:
    """SHACL validation of the dataset against a shapes document."""
    kind: ClassVar[StepKind] = StepKind.SHACL
    shapes: bytes


@dataclass(frozen=True)
class SparqlConstructStep:
    """CONSTRUCT query whose result replaces the dataset."""
    kind: ClassVar[StepKind] = StepKind.SPARQL_CONSTRUCT
    query: str


@dataclass(frozen=True)
class SparqlUpdateStep:
    """SPARQL Update applied to the dataset in place."""
    kind: ClassVar[StepKind] = StepKind.SPARQL_UPDATE
    update: str


PreStep = Union[NativeTransformStep, ExternalFilterStep, SchemaValidateStep]
PostStep = Union[ShaclStep, SparqlConstructStep, SparqlUpdateStep]

PRE_STEP_KINDS = (StepKind.NATIVE_TRANSFORM, StepKind.JQ, StepKind.JSON_SCHEMA)
POST_STEP_KINDS = (StepKind.SHACL, StepKind.SPARQL_CONSTRUCT, StepKind.SPARQL_UPDATE)


# ============================================================================
# Identifier rules
# ============================================================================

@dataclass(frozen=True)
class IdRule:
    """Mint ``template`` (with ``{field}`` placeholders) at ``path``.

    Fields are read from the object at ``scope`` (default: the whole
    document).
    """
    path: str
    template: str
    scope: Optional[str] = None
    strict: bool = False

    def __post_init__(self) -> None:
        if not self.path:
            raise ConfigurationError("Id rule requires 'path'")
        if self.template is None:
            raise ConfigurationError("Id rule requires 'template'")


# ============================================================================
# Imports, input, metadata
# ============================================================================

@dataclass(frozen=True)
class PlanImport:
    """Import by location (``ref``) or by (``provider``, ``identifier``)."""
    ref: Optional[str] = None
    provider: Optional[str] = None
    identifier: Optional[str] = None
    profile: Optional[str] = None

    def __post_init__(self) -> None:
        by_location = bool(self.ref)
        by_provider = bool(self.provider and self.identifier)
        if by_location == by_provider:
            raise ConfigurationError(
                "Plan import needs either 'ref' or both 'provider' and 'id'"
            )

    @property
    def is_location(self) -> bool:
        return bool(self.ref)

    def provider_key(self) -> str:
        """Cycle key for provider imports: ``provider:identifier:profile``."""
        return f"{self.provider}:{self.identifier}:{self.profile or ''}"


@dataclass(frozen=True)
class ApiInputSpec:
    """Plan-declared API input."""
    protocol: str
    config: ApiConfig


@dataclass(frozen=True)
class PlanMetadata:
    """Descriptive plan metadata."""
    title: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None
    version: Optional[str] = None
    license: Optional[str] = None
    schema: Optional[str] = None
    profile: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    profiles_of: Tuple[str, ...] = ()

    SCALAR_FIELDS: ClassVar[Tuple[str, ...]] = (
        "title", "description", "author", "date", "version", "license", "schema", "profile",
    )
    LIST_FIELDS: ClassVar[Tuple[str, ...]] = ("keywords", "profiles_of")


# ============================================================================
# Plan
# ============================================================================

@dataclass(frozen=True)
class LiftPlan:
    """A merged, immutable lift plan."""
    context: Optional[ContextSpec] = None
    pre_steps: Tuple[PreStep, ...] = ()
    post_steps: Tuple[PostStep, ...] = ()
    id_rules: Tuple[IdRule, ...] = ()
    input: Optional[ApiInputSpec] = None
    imports: Tuple[PlanImport, ...] = ()
    metadata: Optional[PlanMetadata] = None

    def __post_init__(self) -> None:
        for step in self.pre_steps:
            if step.kind not in PRE_STEP_KINDS:
                raise ConfigurationError(f"{step.kind.value} is not a pre-step")
        for step in self.post_steps:
            if step.kind not in POST_STEP_KINDS:
                raise ConfigurationError(f"{step.kind.value} is not a post-step")
