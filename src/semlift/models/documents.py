"""
Documents, options and results of a lift.

JsonDocument is an immutable byte buffer holding one JSON value. Its parsed
tree is computed once; pointer edits return new documents.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, List, Optional, Tuple, Union

from ..constants import LiftDefaults
from ..core import json_pointer
from ..core.cancellation import CancellationToken
from ..core.errors import ConfigurationError, DecodeError, StrictValidationFailure
from .plan import ContextSpec, IdRule


# ============================================================================
# JSON
# ============================================================================

def dump_json(value: Any) -> bytes:
    """Compact UTF-8 JSON encoding used for every document buffer."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class JsonDocument:
    """Immutable JSON value backed by its UTF-8 encoding."""
    data: bytes

    @classmethod
    def parse(cls, raw: Union[bytes, str]) -> 'JsonDocument':
        """Validate ``raw`` as JSON and wrap it."""
        data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        document = cls(data)
        try:
            document.value
        except ValueError as e:
            raise DecodeError(f"Invalid JSON: {e}") from e
        return document

    @classmethod
    def from_value(cls, value: Any) -> 'JsonDocument':
        return cls(dump_json(value))

    @cached_property
    def value(self) -> Any:
        """The parsed JSON tree. Treat as read-only."""
        return json.loads(self.data.decode("utf-8"))

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")

    def get(self, pointer: str, default: Any = json_pointer.MISSING) -> Any:
        return json_pointer.get(self.value, pointer, default)

    def set(self, pointer: str, value: Any) -> 'JsonDocument':
        return JsonDocument.from_value(json_pointer.set_at(self.value, pointer, value))

    def remove(self, pointer: str) -> 'JsonDocument':
        return JsonDocument.from_value(json_pointer.remove(self.value, pointer))


# ============================================================================
# RDF output
# ============================================================================

class RdfOutput(str, Enum):
    """Serialization forms produced by the RDF backend."""
    TURTLE = "turtle"
    JSON_LD = "json-ld"
    N_TRIPLES = "nt"

    @classmethod
    def parse(cls, name: str) -> 'RdfOutput':
        """Accept common aliases such as ``ttl``, ``jsonld`` and ``ntriples``."""
        key = (name or "").strip().lower().replace("_", "-")
        aliases = {
            "turtle": cls.TURTLE,
            "ttl": cls.TURTLE,
            "json-ld": cls.JSON_LD,
            "jsonld": cls.JSON_LD,
            "nt": cls.N_TRIPLES,
            "ntriples": cls.N_TRIPLES,
            "n-triples": cls.N_TRIPLES,
        }
        if key not in aliases:
            raise ConfigurationError(f"Unsupported RDF output form: {name}")
        return aliases[key]

    @property
    def media_type(self) -> str:
        return {
            RdfOutput.TURTLE: "text/turtle",
            RdfOutput.JSON_LD: "application/ld+json",
            RdfOutput.N_TRIPLES: "application/n-triples",
        }[self]

    @property
    def file_extension(self) -> str:
        return {
            RdfOutput.TURTLE: ".ttl",
            RdfOutput.JSON_LD: ".jsonld",
            RdfOutput.N_TRIPLES: ".nt",
        }[self]


@dataclass(frozen=True)
class RdfDocument:
    """Serialized RDF."""
    data: bytes
    output: RdfOutput = RdfOutput.TURTLE

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")


@dataclass(frozen=True)
class ValidationReport:
    """SHACL validation outcome."""
    conforms: bool
    report: bytes = b""

    @property
    def text(self) -> str:
        return self.report.decode("utf-8")


# ============================================================================
# Results
# ============================================================================

@dataclass
class Diagnostics:
    """Applied step names and recoverable warnings, in order."""
    applied_steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_step(self, name: str) -> None:
        self.applied_steps.append(name)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


@dataclass(frozen=True)
class LiftResult:
    """Output of a lift: RDF, the last SHACL report (if any) and diagnostics."""
    rdf: RdfDocument
    report: Optional[ValidationReport] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def conforms(self) -> bool:
        """True unless a SHACL report exists and does not conform."""
        return self.report is None or self.report.conforms

    def raise_for_conformance(self) -> 'LiftResult':
        """Raise StrictValidationFailure when the SHACL report does not conform."""
        if not self.conforms:
            raise StrictValidationFailure(self)
        return self

    def get_summary(self) -> str:
        lines = [
            f"Applied steps: {', '.join(self.diagnostics.applied_steps) or '(none)'}",
            f"Warnings: {len(self.diagnostics.warnings)}",
        ]
        if self.report is not None:
            lines.append(f"SHACL conforms: {self.report.conforms}")
        lines.extend(f"  - {w}" for w in self.diagnostics.warnings)
        return "\n".join(lines)


# ============================================================================
# Options
# ============================================================================

@dataclass(frozen=True)
class LiftOptions:
    """Caller options for one lift invocation.

    ``id_rules_override`` rules run after the plan's own rules. A
    ``context_override`` replaces the plan context entirely.
    """
    base_iri: str = LiftDefaults.BASE_IRI
    output: RdfOutput = RdfOutput.TURTLE
    strict: bool = False
    jq_binary: str = LiftDefaults.JQ_BINARY
    context_override: Optional[ContextSpec] = None
    id_rules_override: Tuple[IdRule, ...] = ()
    csv_infer_types: bool = LiftDefaults.CSV_INFER_TYPES
    relational_fetch_size: int = LiftDefaults.RELATIONAL_FETCH_SIZE
    dataframe_max_rows: Optional[int] = None
    cancellation_token: Optional[CancellationToken] = field(default=None, compare=False)
