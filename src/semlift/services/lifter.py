"""
Lifting pipeline engine.

Executes a LiftPlan against one input source:

    1. decode the source (decoder chosen by the source's kind)
    2. pre-steps in order: native transform, jq filter, JSON Schema validation
    3. identifier rules (plan rules, then caller overrides)
    4. resolve the JSON-LD context (caller override wins over the plan)
    5. embed the context: objects get ``@context``, arrays go under ``@graph``,
       scalars under ``@value``
    6. JSON-LD to RDF through the backend, using ``options.base_iri``
    7. post-steps in order: SHACL, SPARQL CONSTRUCT (replaces the dataset),
       SPARQL UPDATE (in place); a strict lift stops at the first
       non-conforming SHACL report
    8. serialize in the requested form

Usage:
    lifter = create_default_lifter()
    result = lifter.lift(JsonSource(data), plan, LiftOptions(strict=True))
    result.raise_for_conformance()

Strict mode escalates schema and identifier-rule failures to exceptions.
Without it they are recorded as diagnostics warnings and the lift continues.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..constants import StepTypes
from ..core.cache import CacheConfig, CachingResourceResolver
from ..core.cancellation import check_cancelled
from ..core import json_pointer
from ..core.errors import (
    ConfigurationError,
    DecodeError,
    IdentifierRuleViolation,
    SchemaViolation,
)
from ..core.resources import ResourceResolver
from ..formats.registry import DecoderRegistry, create_default_decoder_registry
from ..models.documents import (
    Diagnostics,
    JsonDocument,
    LiftOptions,
    LiftResult,
    RdfDocument,
    ValidationReport,
    dump_json,
)
from ..models.plan import (
    ContextSpec,
    ExternalFilterStep,
    IdRule,
    InlineContext,
    LiftPlan,
    NativeTransformStep,
    PreStep,
    ResolvedContext,
    SchemaValidateStep,
    ShaclStep,
    SparqlConstructStep,
    SparqlUpdateStep,
)
from ..models.sources import ApiSource, InputSource
from ..rdf.backend import Dataset, RdfBackend
from ..rdf.rdflib_backend import RdflibBackend
from ..steps.jq import JqProcessor
from ..steps.schema import JsonSchemaValidator

logger = logging.getLogger(__name__)

TEMPLATE_FIELD = re.compile(r"\{([^}]+)\}")


# ============================================================================
# Context helpers
# ============================================================================

def unwrap_context(document: Any) -> Any:
    """Return the value of ``@context`` when ``document`` is ``{"@context": ...}``."""
    if isinstance(document, Mapping) and "@context" in document:
        return document["@context"]
    return document


def embed_context(payload: Any, context: Any) -> Dict[str, Any]:
    """Wrap ``payload`` with a JSON-LD ``@context``."""
    if isinstance(payload, Mapping):
        return {"@context": context, **payload}
    if isinstance(payload, list):
        return {"@context": context, "@graph": payload}
    return {"@context": context, "@value": payload}


def template_value(value: Any) -> Optional[str]:
    """Text substituted for a template field; None for null or missing values."""
    if value is None or value is json_pointer.MISSING:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def expand_template(template: str, scope: Mapping[str, Any]) -> Tuple[str, List[str]]:
    """Substitute ``{field}`` placeholders from ``scope``; also return missing field names."""
    missing: List[str] = []

    def _substitute(match: "re.Match[str]") -> str:
        text = template_value(scope.get(match.group(1), json_pointer.MISSING))
        if text is None:
            missing.append(match.group(1))
            return match.group(0)
        return text

    return TEMPLATE_FIELD.sub(_substitute, template), missing


# ============================================================================
# Lifter
# ============================================================================

class SemanticLifter(ABC):
    """Runs lift plans."""

    @abstractmethod
    def lift(
        self,
        source: Optional[InputSource],
        plan: LiftPlan,
        options: Optional[LiftOptions] = None,
    ) -> LiftResult:
        """Lift ``source`` with ``plan``; raise on fatal failures."""
        pass


class DefaultSemanticLifter(SemanticLifter):
    """
    Sequential lifting pipeline.

    Args:
        decoders: Decoder registry used for step 1.
        resolver: Resource resolver for referenced contexts.
        backend: JSON-LD parsing, SHACL, SPARQL and serialization.
        jq_runner: Runner for jq steps; by default a JqProcessor using
            ``options.jq_binary``.
        schema_validator: JSON Schema validator for json-schema steps.
    """

    def __init__(
        self,
        decoders: DecoderRegistry,
        resolver: ResourceResolver,
        backend: RdfBackend,
        jq_runner: Optional[Any] = None,
        schema_validator: Optional[JsonSchemaValidator] = None,
    ):
        self.decoders = decoders
        self._resolver = resolver
        self.backend = backend
        self.jq_runner = jq_runner
        self.schema_validator = schema_validator or JsonSchemaValidator()

    @property
    def resolver(self) -> ResourceResolver:
        return self._resolver

    def lift(
        self,
        source: Optional[InputSource],
        plan: LiftPlan,
        options: Optional[LiftOptions] = None,
    ) -> LiftResult:
        """
        Lift ``source`` with ``plan``.

        When ``source`` is None the plan's API input is used.

        Raises:
            ConfigurationError: no source and no plan input, or no context.
            SchemaViolation: strict schema step failure.
            IdentifierRuleViolation: strict identifier rule failure.
            ExternalProcessFailure: jq exited non-zero.
            OperationCancelledException: the options' token was cancelled.
        """
        options = options or LiftOptions()
        token = options.cancellation_token
        diagnostics = Diagnostics()

        if source is None:
            if plan.input is None:
                raise ConfigurationError("No input source given and the plan declares no input")
            source = ApiSource(protocol=plan.input.protocol, config=plan.input.config)

        check_cancelled(token)
        document = self.decoders.decode(source, options)
        logger.info(f"Decoded {source.kind.value} source ({len(document.data)} bytes)")

        for step in plan.pre_steps:
            check_cancelled(token)
            document = self._apply_pre_step(step, document, options, diagnostics)
            diagnostics.add_step(step.kind.value)

        rules = tuple(plan.id_rules) + tuple(options.id_rules_override)
        if rules:
            check_cancelled(token)
            document = self._apply_id_rules(document, rules, options, diagnostics)
            diagnostics.add_step(StepTypes.ID_RULES)

        check_cancelled(token)
        context = self.resolve_context(options.context_override or plan.context)
        jsonld = dump_json(embed_context(document.value, context))
        dataset = self.backend.to_dataset(jsonld, options.base_iri)

        report: Optional[ValidationReport] = None
        for step in plan.post_steps:
            check_cancelled(token)
            if isinstance(step, ShaclStep):
                report = self.backend.shacl_validate(dataset, step.shapes)
                diagnostics.add_step(step.kind.value)
                if options.strict and not report.conforms:
                    logger.warning("SHACL report does not conform; stopping strict lift")
                    return LiftResult(self._serialize(dataset, options), report, diagnostics)
            elif isinstance(step, SparqlConstructStep):
                dataset = self.backend.sparql_construct(dataset, step.query)
                diagnostics.add_step(step.kind.value)
            elif isinstance(step, SparqlUpdateStep):
                dataset = self.backend.sparql_update(dataset, step.update)
                diagnostics.add_step(step.kind.value)
            else:
                raise ConfigurationError(f"Unsupported post-step: {step!r}")
            logger.info(f"Applied post-step {step.kind.value}")

        check_cancelled(token)
        return LiftResult(self._serialize(dataset, options), report, diagnostics)

    # ------------------------------------------------------------------
    # Pre-steps
    # ------------------------------------------------------------------

    def _apply_pre_step(
        self,
        step: PreStep,
        document: JsonDocument,
        options: LiftOptions,
        diagnostics: Diagnostics,
    ) -> JsonDocument:
        if isinstance(step, NativeTransformStep):
            logger.info(f"Applying native transform {step.reference or step.transform!r}")
            return JsonDocument.from_value(step.transform(document.value))

        if isinstance(step, ExternalFilterStep):
            runner = self.jq_runner or JqProcessor(options.jq_binary)
            logger.info("Applying jq filter")
            output = runner.apply(step.program, document.data)
            try:
                return JsonDocument.parse(output)
            except DecodeError as e:
                raise DecodeError(f"jq produced invalid JSON: {e}") from e

        if isinstance(step, SchemaValidateStep):
            result = self.schema_validator.validate(step.schema, document.value)
            if not result.valid:
                if step.strict or options.strict:
                    raise SchemaViolation(result.errors)
                message = "JSON Schema validation failed: " + "; ".join(result.errors)
                logger.warning(message)
                diagnostics.add_warning(message)
            else:
                logger.info("JSON Schema validation passed")
            return document

        raise ConfigurationError(f"Unsupported pre-step: {step!r}")

    # ------------------------------------------------------------------
    # Identifier rules
    # ------------------------------------------------------------------

    def _apply_id_rules(
        self,
        document: JsonDocument,
        rules: Sequence[IdRule],
        options: LiftOptions,
        diagnostics: Diagnostics,
    ) -> JsonDocument:
        current = document.value
        for index, rule in enumerate(rules):
            try:
                minted = self._mint(current, rule, index)
                current = self._write(current, rule, index, minted)
            except IdentifierRuleViolation as violation:
                if rule.strict or options.strict:
                    raise
                logger.warning(str(violation))
                diagnostics.add_warning(str(violation))
                continue
            logger.debug(f"Id rule #{index} set {rule.path} = {minted}")
        return JsonDocument.from_value(current)

    @staticmethod
    def _write(document: Any, rule: IdRule, index: int, minted: str) -> Any:
        try:
            return json_pointer.set_at(document, rule.path, minted)
        except json_pointer.PointerError as e:
            raise IdentifierRuleViolation(index, rule.path, f"cannot write target: {e}") from e

    @staticmethod
    def _mint(document: Any, rule: IdRule, index: int) -> str:
        if rule.scope:
            if not json_pointer.contains(document, rule.scope):
                raise IdentifierRuleViolation(index, rule.path, f"scope not found: {rule.scope}")
            scope = json_pointer.get(document, rule.scope)
        else:
            scope = document
        if not isinstance(scope, Mapping):
            raise IdentifierRuleViolation(
                index, rule.path, f"scope is not an object for template {rule.template}"
            )
        minted, missing = expand_template(rule.template, scope)
        if missing:
            raise IdentifierRuleViolation(
                index, rule.path,
                f"template variables missing for template {rule.template}: {', '.join(missing)}",
            )
        return minted

    # ------------------------------------------------------------------
    # Context and output
    # ------------------------------------------------------------------

    def resolve_context(self, spec: Optional[ContextSpec]) -> Any:
        """Effective ``@context`` value, with referenced documents fetched and unwrapped."""
        if spec is None:
            raise ConfigurationError("No JSON-LD context: the plan has none and no override was given")
        if isinstance(spec, ResolvedContext):
            context = self._fetch_context(spec.uri)
        elif isinstance(spec, InlineContext):
            context = unwrap_context(spec.document)
        else:
            raise ConfigurationError(f"Unsupported context: {spec!r}")
        return self._inline_references(context)

    def _fetch_context(self, uri: str) -> Any:
        logger.debug(f"Resolving context {uri}")
        data = self._resolver.resolve(uri)
        try:
            return unwrap_context(json.loads(data.decode("utf-8")))
        except ValueError as e:
            raise DecodeError(f"Context {uri} is not valid JSON: {e}") from e

    def _inline_references(self, context: Any) -> Any:
        if isinstance(context, str):
            return self._fetch_context(context)
        if isinstance(context, list):
            inlined: List[Any] = []
            for entry in context:
                if isinstance(entry, str):
                    fetched = self._fetch_context(entry)
                    inlined.extend(fetched if isinstance(fetched, list) else [fetched])
                else:
                    inlined.append(entry)
            return inlined
        return context

    def _serialize(self, dataset: Dataset, options: LiftOptions) -> RdfDocument:
        return RdfDocument(self.backend.serialize(dataset, options.output), options.output)


# ============================================================================
# Factory
# ============================================================================

def create_default_lifter(
    cache_config: Optional[CacheConfig] = None,
    resolver: Optional[ResourceResolver] = None,
    backend: Optional[RdfBackend] = None,
    api_registry: Optional[Any] = None,
    connect: Optional[Any] = None,
    dataframe_session: Any = None,
    show_progress: bool = False,
) -> DefaultSemanticLifter:
    """
    Lifter wired with the caching resolver, built-in decoders and the rdflib backend.

    Args:
        cache_config: Cache settings (default: ``~/.semlift/cache``, 24h TTL).
        resolver: Replaces the caching resolver entirely.
        backend: Replaces the rdflib/pyshacl backend.
        api_registry: API protocol registry for API sources.
        connect: DB-API connector for relational sources.
        dataframe_session: Spark-style session for dataframe sources.
        show_progress: Show tqdm progress bars while paging APIs.
    """
    resolver = resolver or CachingResourceResolver(cache_config or CacheConfig.default())
    if api_registry is None:
        from ..api import create_default_protocol_registry
        api_registry = create_default_protocol_registry(show_progress=show_progress)
    decoders = create_default_decoder_registry(
        resolver,
        api_registry=api_registry,
        connect=connect,
        dataframe_session=dataframe_session,
    )
    return DefaultSemanticLifter(
        decoders=decoders,
        resolver=resolver,
        backend=backend or RdflibBackend(),
    )
