"""Data model: documents, results, options, input sources and lift plans."""

from .documents import (
    JsonDocument,
    RdfDocument,
    RdfOutput,
    ValidationReport,
    Diagnostics,
    LiftResult,
    LiftOptions,
    dump_json,
)
from .sources import (
    SourceKind,
    ApiProtocolId,
    OgcApiFeaturesConfig,
    WfsConfig,
    OpenApiConfig,
    CustomApiConfig,
    ApiConfig,
    api_config_from_dict,
    JsonSource,
    XmlSource,
    CsvSource,
    RelationalSource,
    DataFrameSource,
    ApiSource,
    InputSource,
)
from .plan import (
    InlineContext,
    ResolvedContext,
    ContextSpec,
    StepKind,
    NativeTransformStep,
    ExternalFilterStep,
    SchemaValidateStep,
    ShaclStep,
    SparqlConstructStep,
    SparqlUpdateStep,
    PreStep,
    PostStep,
    IdRule,
    PlanImport,
    ApiInputSpec,
    PlanMetadata,
    LiftPlan,
)

__all__ = [
    "JsonDocument",
    "RdfDocument",
    "RdfOutput",
    "ValidationReport",
    "Diagnostics",
    "LiftResult",
    "LiftOptions",
    "dump_json",
    "SourceKind",
    "ApiProtocolId",
    "OgcApiFeaturesConfig",
    "WfsConfig",
    "OpenApiConfig",
    "CustomApiConfig",
    "ApiConfig",
    "api_config_from_dict",
    "JsonSource",
    "XmlSource",
    "CsvSource",
    "RelationalSource",
    "DataFrameSource",
    "ApiSource",
    "InputSource",
    "InlineContext",
    "ResolvedContext",
    "ContextSpec",
    "StepKind",
    "NativeTransformStep",
    "ExternalFilterStep",
    "SchemaValidateStep",
    "ShaclStep",
    "SparqlConstructStep",
    "SparqlUpdateStep",
    "PreStep",
    "PostStep",
    "IdRule",
    "PlanImport",
    "ApiInputSpec",
    "PlanMetadata",
    "LiftPlan",
]
