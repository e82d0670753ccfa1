"""
Semantic Lift - turn semi-structured data into validated RDF.

A declarative lift plan describes how a decoded JSON document is prepared
(pre-steps, identifier rules, JSON-LD context) and what happens to the RDF
afterwards (SHACL validation, SPARQL construct/update).

Usage:
    from semlift import create_default_lifter, JsonSource, LiftOptions
    from semlift.plan import PlanLoader

    lifter = create_default_lifter()
    plan = PlanLoader(lifter.resolver).load_file("plans/things.yaml")
    result = lifter.lift(JsonSource(b'{"type": "thing", "code": "abc"}'), plan, LiftOptions())
    print(result.rdf.text)
"""

from .core.errors import (
    SemliftError,
    ConfigurationError,
    MissingContextError,
    ValidationFailure,
    SchemaViolation,
    IdentifierRuleViolation,
    StrictValidationFailure,
    ImportCycleError,
    ExternalProcessFailure,
    FetchError,
    ResourceNotFoundError,
    ProtocolError,
    DecodeError,
    PlanResolutionError,
    PlanErrorKind,
)
from .models import (
    JsonDocument,
    RdfDocument,
    RdfOutput,
    ValidationReport,
    Diagnostics,
    LiftResult,
    LiftOptions,
    JsonSource,
    XmlSource,
    CsvSource,
    RelationalSource,
    DataFrameSource,
    ApiSource,
    LiftPlan,
    IdRule,
)
from .services.lifter import DefaultSemanticLifter, create_default_lifter

__version__ = "0.1.0"

__all__ = [
    "SemliftError",
    "ConfigurationError",
    "MissingContextError",
    "ValidationFailure",
    "SchemaViolation",
    "IdentifierRuleViolation",
    "StrictValidationFailure",
    "ImportCycleError",
    "ExternalProcessFailure",
    "FetchError",
    "ResourceNotFoundError",
    "ProtocolError",
    "DecodeError",
    "PlanResolutionError",
    "PlanErrorKind",
    "JsonDocument",
    "RdfDocument",
    "RdfOutput",
    "ValidationReport",
    "Diagnostics",
    "LiftResult",
    "LiftOptions",
    "JsonSource",
    "XmlSource",
    "CsvSource",
    "RelationalSource",
    "DataFrameSource",
    "ApiSource",
    "LiftPlan",
    "IdRule",
    "DefaultSemanticLifter",
    "create_default_lifter",
    "__version__",
]
