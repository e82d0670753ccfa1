"""
Exception hierarchy for Semantic Lift.

Every failure raised by the library derives from SemliftError so callers can
catch one type at the boundary. The subclasses mirror the failure categories
of a lift:

- ConfigurationError: a plan, option or source is malformed (raised before I/O)
- ValidationFailure: schema, identifier-rule or SHACL validation failed
- ImportCycleError: a plan imports itself directly or transitively
- ExternalProcessFailure: the external filter interpreter exited non-zero
- FetchError: a resource could not be read and no stale copy was usable
- ProtocolError: an upstream API answered with something unusable
- PlanResolutionError: a plan provider could not resolve (provider, id)
"""

from enum import Enum
from typing import Any, Optional, Sequence


class SemliftError(Exception):
    """Base class for all Semantic Lift errors."""


# ============================================================================
# Configuration
# ============================================================================

class ConfigurationError(SemliftError):
    """Missing required field, unsupported step type or invalid option."""


class MissingContextError(ConfigurationError):
    """No JSON-LD context is available after import merging."""

    def __init__(self, location: Optional[str] = None):
        self.location = location
        where = f" in plan {location}" if location else ""
        super().__init__(f"Lift plan has no context{where}")


# ============================================================================
# Validation
# ============================================================================

class ValidationFailure(SemliftError):
    """Base class for schema, identifier-rule and SHACL failures."""


class SchemaViolation(ValidationFailure):
    """A JSON Schema pre-step rejected the document under strict mode."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("JSON Schema validation failed: " + "; ".join(self.errors))


class IdentifierRuleViolation(ValidationFailure):
    """An identifier rule could not be applied under strict mode."""

    def __init__(self, rule_index: int, path: str, reason: str):
        self.rule_index = rule_index
        self.path = path
        self.reason = reason
        super().__init__(f"Id rule #{rule_index} ({path}): {reason}")


class StrictValidationFailure(ValidationFailure):
    """The SHACL report of a strict lift does not conform.

    The partial result (serialized dataset plus report) stays available on
    ``result`` so callers can still write both out.
    """

    def __init__(self, result: Any, message: str = "SHACL validation failed"):
        self.result = result
        super().__init__(message)


# ============================================================================
# Plan composition
# ============================================================================

class ImportCycleError(SemliftError):
    """A plan import repeats within one load call."""

    def __init__(self, key: str, chain: Sequence[str] = ()):
        self.key = key
        self.chain = list(chain)
        trail = " -> ".join(self.chain + [key]) if self.chain else key
        super().__init__(f"Import cycle detected: {trail}")


class PlanErrorKind(str, Enum):
    """Discriminates registry fall-through from real failures."""
    UNKNOWN_PROVIDER = "unknown_provider"
    UNKNOWN_IDENTIFIER = "unknown_identifier"
    OTHER = "other"


class PlanResolutionError(SemliftError):
    """A (provider, identifier) import could not be resolved."""

    def __init__(self, kind: PlanErrorKind, message: str):
        self.kind = kind
        super().__init__(message)

    @property
    def is_unknown(self) -> bool:
        """True for errors a composite registry may fall through on."""
        return self.kind in (PlanErrorKind.UNKNOWN_PROVIDER, PlanErrorKind.UNKNOWN_IDENTIFIER)


# ============================================================================
# External processes and I/O
# ============================================================================

class ExternalProcessFailure(SemliftError):
    """The external filter interpreter failed."""

    def __init__(self, exit_code: int, stderr: str, program: str = "jq"):
        self.exit_code = exit_code
        self.stderr = stderr
        self.program = program
        super().__init__(f"{program} failed with exit code {exit_code}: {stderr}")


class FetchError(SemliftError):
    """A resource could not be fetched."""

    def __init__(self, uri: str, message: str, status_code: Optional[int] = None):
        self.uri = uri
        self.status_code = status_code
        super().__init__(message)


class ResourceNotFoundError(FetchError):
    """A resource does not exist at the given location."""

    def __init__(self, uri: str):
        super().__init__(uri, f"Resource not found: {uri}", status_code=404)


class ProtocolError(SemliftError):
    """Unsupported protocol, malformed upstream response or non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class DecodeError(SemliftError):
    """Raw source bytes could not be decoded into a JSON document."""
