"""
Lift plan loader.

Plan documents are YAML (JSON is accepted too):

    imports:
      - ref: base-plan.yaml                 # relative to this document
      - provider: ogc-bblocks
        id: ogc.geo.features.feature
        profile: strict
    context:
      ref: https://example.org/context.jsonld   # or inline: {...} / json: '{...}'
      idRules:
        - {path: /id, template: "https://example.org/{type}/{code}"}
    additionalSteps:
      - {type: jq, code: ".items"}
      - {type: native-transform, ref: "my_pkg.transforms:normalize"}
      - {type: json-schema, ref: schema.json, strict: false}
      - {type: shacl, ref: shapes.ttl}
      - {type: sparql-construct, ref: reshape.rq}
      - {type: sparql-update, code: "DELETE WHERE { ?s ?p ?o }"}
    idRules:
      ref: rules.yaml
    input:
      type: api
      protocol: ogc-api-features
      config: {baseUrl: "https://demo.example/api", collection: lakes}
    metadata:
      title: Lakes
      keywords: [hydro]

Imports are resolved depth-first; each import is fully merged before its
importer (see plan.merge). Every import identity (absolute location, or
``provider:identifier:profile``) may occur once per load call. Plans
returned by a provider have their own imports resolved the same way, with
relative references taken against the importing document. A repeat
raises ImportCycleError before the repeated import is read.
"""

import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union
from urllib.parse import urljoin

import yaml

from ..constants import StepTypes
from ..core.errors import ConfigurationError, ImportCycleError, MissingContextError
from ..core.resources import (
    DefaultResourceResolver,
    PACKAGE_SCHEMES,
    ResourceResolver,
    file_uri_to_path,
    is_absolute_reference,
    is_http,
)
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
from ..models.sources import api_config_from_dict
from ..plugins.base import PlanResolver
from ..steps.transforms import load_transform
from .merge import merge_plan

logger = logging.getLogger(__name__)

PlanDocument = Union[bytes, str, Mapping[str, Any]]


# ============================================================================
# Location helpers
# ============================================================================

def resolve_reference(ref: str, base_location: Optional[str]) -> str:
    """Resolve ``ref`` against the location of the referring document.

    Absolute references (package:, http(s):, file:, absolute paths) are
    returned unchanged. A base ending in ``/`` (or naming an existing
    directory) is treated as a directory.
    """
    if is_absolute_reference(ref) or not base_location:
        return ref if is_absolute_reference(ref) else os.path.normpath(ref)
    if is_http(base_location):
        return urljoin(base_location, ref)
    lowered = base_location.lower()
    if lowered.startswith(PACKAGE_SCHEMES):
        scheme, _, rest = base_location.partition(":")
        directory = rest if rest.endswith("/") else rest.rsplit("/", 1)[0] + "/"
        return f"{scheme}:{os.path.normpath(directory + ref).replace(os.sep, '/')}"
    base_path = file_uri_to_path(base_location) if lowered.startswith("file:") else Path(base_location)
    directory = base_path if (base_location.endswith(("/", os.sep)) or base_path.is_dir()) else base_path.parent
    return os.path.normpath(str(directory / ref))


def location_key(location: str) -> str:
    """Identity of a location for cycle detection."""
    if is_http(location) or location.lower().startswith(PACKAGE_SCHEMES):
        return location
    path = file_uri_to_path(location) if location.lower().startswith("file:") else Path(location)
    return os.path.normcase(os.path.abspath(str(path)))


def _rebased(item: PlanImport, base: Optional[str]) -> PlanImport:
    if item.is_location:
        return replace(item, ref=resolve_reference(item.ref, base))
    return item


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


# ============================================================================
# Loader
# ============================================================================

class PlanLoader:
    """Parses plan documents and resolves their imports.

    Args:
        resolver: Reads referenced plans, contexts, schemas, shapes and queries.
        plan_resolver: Resolves ``{provider, id}`` imports (e.g. a
            CompositePlanRegistry). Provider plans are taken as already merged.
    """

    def __init__(
        self,
        resolver: Optional[ResourceResolver] = None,
        plan_resolver: Optional[PlanResolver] = None,
    ):
        self._resolver = resolver or DefaultResourceResolver()
        self._plan_resolver = plan_resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_file(self, path: Union[str, Path]) -> LiftPlan:
        """Load the plan stored at a filesystem path."""
        location = os.path.abspath(str(path))
        return self.load_location(location)

    def load_location(self, location: str) -> LiftPlan:
        """Load the plan at any resolvable location (path, URL, package:)."""
        data = self._resolver.resolve(location)
        return self.load(data, location)

    def load(self, document: PlanDocument, base_location: Optional[str] = None) -> LiftPlan:
        """Parse ``document`` and merge its imports.

        Args:
            document: Plan text/bytes (YAML or JSON) or an already parsed mapping.
            base_location: Location of the document itself, used to resolve
                relative references. A value ending in ``/`` names a directory.

        Raises:
            ConfigurationError: malformed document or unsupported step/input type.
            ImportCycleError: an import identity repeats within this call.
            MissingContextError: no context after merging.
        """
        visited: Set[str] = set()
        chain: List[str] = []
        if base_location and not base_location.endswith(("/", os.sep)):
            root_key = location_key(base_location)
            visited.add(root_key)
            chain.append(root_key)
        plan = self._load_document(self._parse(document, base_location), base_location, visited, chain)
        if plan.context is None:
            raise MissingContextError(base_location)
        logger.info(
            f"Loaded plan {base_location or '<inline>'}: {len(plan.pre_steps)} pre-steps, "
            f"{len(plan.post_steps)} post-steps, {len(plan.id_rules)} id rules"
        )
        return plan

    def load_id_rules(self, location: Union[str, Path]) -> Tuple[IdRule, ...]:
        """Load a standalone identifier-rule document (list, ``{idRules}`` or single rule)."""
        location = str(location)
        data = self._resolver.resolve(location)
        return self._parse_id_rules(self._parse_yaml(data, location), location)

    # ------------------------------------------------------------------
    # Recursion
    # ------------------------------------------------------------------

    def _load_document(
        self,
        root: Mapping[str, Any],
        base: Optional[str],
        visited: Set[str],
        chain: List[str],
    ) -> LiftPlan:
        imports = self._parse_imports(root.get("imports"), base)
        resolved_imports = [self._resolve_import(item, base, visited, chain) for item in imports]

        context, context_rules = self._parse_context(root.get("context"), base)
        pre_steps, post_steps = self._parse_steps(root.get("additionalSteps"), base)
        local = LiftPlan(
            context=context,
            pre_steps=pre_steps,
            post_steps=post_steps,
            id_rules=self._parse_id_rules(root.get("idRules"), base),
            input=self._parse_input(root.get("input"), base),
            imports=imports,
            metadata=self._parse_metadata(root.get("metadata")),
        )
        return merge_plan(local, resolved_imports, context_rules)

    def _resolve_import(
        self,
        item: PlanImport,
        base: Optional[str],
        visited: Set[str],
        chain: List[str],
    ) -> LiftPlan:
        key = location_key(item.ref) if item.is_location else item.provider_key()
        if key in visited:
            raise ImportCycleError(key, chain)
        visited.add(key)

        if not item.is_location:
            if self._plan_resolver is None:
                raise ConfigurationError(
                    f"Plan import {item.provider}:{item.identifier} requires a plan resolver"
                )
            logger.debug(f"Resolving plan import {key}")
            plan = self._plan_resolver.resolve(item.provider, item.identifier)
            if not plan.imports:
                return plan
            chain.append(key)
            try:
                nested = [
                    self._resolve_import(_rebased(nested_item, base), base, visited, chain)
                    for nested_item in plan.imports
                ]
            finally:
                chain.pop()
            return merge_plan(replace(plan, imports=()), nested)

        logger.debug(f"Loading plan import {item.ref}")
        data = self._resolver.resolve(item.ref)
        chain.append(key)
        try:
            return self._load_document(self._parse(data, item.ref), item.ref, visited, chain)
        finally:
            chain.pop()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self, document: PlanDocument, location: Optional[str]) -> Mapping[str, Any]:
        if isinstance(document, Mapping):
            return document
        root = self._parse_yaml(document, location)
        if root is None:
            return {}
        if not isinstance(root, Mapping):
            raise ConfigurationError(f"Lift plan {location or '<inline>'} must be a mapping")
        return root

    @staticmethod
    def _parse_yaml(data: Union[bytes, str], location: Optional[str]) -> Any:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid plan document {location or '<inline>'}: {e}")

    def _read_bytes(self, ref: str, base: Optional[str]) -> bytes:
        return self._resolver.resolve(resolve_reference(ref, base))

    def _read_text(self, ref: str, base: Optional[str]) -> str:
        return self._read_bytes(ref, base).decode("utf-8")

    def _parse_context(self, raw: Any, base: Optional[str]) -> Tuple[Optional[ContextSpec], Tuple[IdRule, ...]]:
        if raw is None:
            return None, ()
        if isinstance(raw, str):
            return ResolvedContext(resolve_reference(raw, base)), ()
        if not isinstance(raw, Mapping):
            raise ConfigurationError("context must be a reference or a mapping")

        rules = self._parse_id_rules(raw.get("idRules"), base)
        if raw.get("ref"):
            return ResolvedContext(resolve_reference(str(raw["ref"]), base)), rules
        inline = raw.get("inline", raw.get("json"))
        if inline is not None:
            if isinstance(inline, str):
                try:
                    inline = json.loads(inline)
                except ValueError as e:
                    raise ConfigurationError(f"Inline context is not valid JSON: {e}")
            return InlineContext(inline), rules
        raise ConfigurationError("Context must define ref or inline JSON")

    def _code_or_ref_text(self, step: Mapping[str, Any], base: Optional[str], step_type: str) -> str:
        if step.get("code") is not None:
            return str(step["code"])
        if step.get("ref"):
            return self._read_text(str(step["ref"]), base)
        raise ConfigurationError(f"{step_type} step requires code or ref")

    def _code_or_ref_bytes(self, step: Mapping[str, Any], base: Optional[str], step_type: str) -> bytes:
        code = step.get("code")
        if code is not None:
            return dump_json(code) if isinstance(code, (Mapping, list)) else str(code).encode("utf-8")
        if step.get("ref"):
            return self._read_bytes(str(step["ref"]), base)
        raise ConfigurationError(f"{step_type} step requires code or ref")

    def _parse_steps(self, raw: Any, base: Optional[str]) -> Tuple[Tuple[PreStep, ...], Tuple[PostStep, ...]]:
        if raw is None:
            return (), ()
        if not isinstance(raw, list):
            raise ConfigurationError("additionalSteps must be a list")
        pre: List[PreStep] = []
        post: List[PostStep] = []
        for step in raw:
            if not isinstance(step, Mapping) or not step.get("type"):
                raise ConfigurationError("Step missing type")
            step_type = str(step["type"]).strip().lower()
            if step_type == StepTypes.JQ:
                pre.append(ExternalFilterStep(program=self._code_or_ref_text(step, base, step_type)))
            elif step_type in StepTypes.NATIVE_TRANSFORM_ALIASES:
                reference = step.get("ref") or step.get("code")
                if not reference:
                    raise ConfigurationError(f"{step_type} step requires ref 'module:attribute'")
                pre.append(NativeTransformStep(transform=load_transform(str(reference)), reference=str(reference)))
            elif step_type == StepTypes.JSON_SCHEMA:
                pre.append(SchemaValidateStep(
                    schema=self._code_or_ref_bytes(step, base, step_type),
                    strict=_as_bool(step.get("strict"), True),
                ))
            elif step_type == StepTypes.SHACL:
                post.append(ShaclStep(shapes=self._code_or_ref_bytes(step, base, step_type)))
            elif step_type == StepTypes.SPARQL_CONSTRUCT:
                post.append(SparqlConstructStep(query=self._code_or_ref_text(step, base, step_type)))
            elif step_type == StepTypes.SPARQL_UPDATE:
                post.append(SparqlUpdateStep(update=self._code_or_ref_text(step, base, step_type)))
            else:
                raise ConfigurationError(f"Unsupported step type: {step_type}")
        return tuple(pre), tuple(post)

    def _parse_id_rules(self, raw: Any, base: Optional[str]) -> Tuple[IdRule, ...]:
        if raw is None:
            return ()
        if isinstance(raw, list):
            return tuple(self._parse_id_rule(item) for item in raw)
        if not isinstance(raw, Mapping):
            raise ConfigurationError("idRules must be a list or a mapping")
        if raw.get("ref"):
            ref = resolve_reference(str(raw["ref"]), base)
            data = self._resolver.resolve(ref)
            return self._parse_id_rules(self._parse_yaml(data, ref), ref)
        inline = raw.get("inline", raw.get("json"))
        if inline is not None:
            if isinstance(inline, str):
                inline = self._parse_yaml(inline, base)
            return self._parse_id_rules(inline, base)
        if "idRules" in raw:
            return self._parse_id_rules(raw["idRules"], base)
        return (self._parse_id_rule(raw),)

    @staticmethod
    def _parse_id_rule(raw: Any) -> IdRule:
        if not isinstance(raw, Mapping) or raw.get("path") is None or raw.get("template") is None:
            raise ConfigurationError(f"Id rule requires 'path' and 'template': {raw!r}")
        return IdRule(
            path=str(raw["path"]),
            template=str(raw["template"]),
            scope=_as_text(raw.get("scope")),
            strict=_as_bool(raw.get("strict"), False),
        )

    def _parse_input(self, raw: Any, base: Optional[str]) -> Optional[ApiInputSpec]:
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raise ConfigurationError("input must be a mapping")
        input_type = str(raw.get("type") or "").strip().lower()
        if not input_type:
            raise ConfigurationError("input requires type")
        if input_type != "api":
            raise ConfigurationError(f"Unsupported input type: {input_type}")
        protocol = raw.get("protocol")
        if not protocol:
            raise ConfigurationError("API input requires protocol")
        config = raw.get("config") or {}
        if not isinstance(config, Mapping):
            raise ConfigurationError("API input config must be a mapping")
        return ApiInputSpec(
            protocol=str(protocol),
            config=api_config_from_dict(str(protocol), config, lambda ref: resolve_reference(ref, base)),
        )

    @staticmethod
    def _parse_imports(raw: Any, base: Optional[str]) -> Tuple[PlanImport, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise ConfigurationError("imports must be a list")
        imports = []
        for item in raw:
            if not isinstance(item, Mapping):
                raise ConfigurationError(f"Import must be a mapping: {item!r}")
            ref = item.get("ref")
            imports.append(PlanImport(
                ref=resolve_reference(str(ref), base) if ref else None,
                provider=_as_text(item.get("provider")),
                identifier=_as_text(item.get("id")),
                profile=_as_text(item.get("profile")),
            ))
        return tuple(imports)

    @staticmethod
    def _parse_metadata(raw: Any) -> Optional[PlanMetadata]:
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raise ConfigurationError("metadata must be a mapping")

        def _list(key: str) -> Tuple[str, ...]:
            values = raw.get(key) or []
            if not isinstance(values, list):
                values = [values]
            return tuple(str(v) for v in values if v is not None)

        return PlanMetadata(
            title=_as_text(raw.get("title")),
            description=_as_text(raw.get("description")),
            author=_as_text(raw.get("author")),
            date=_as_text(raw.get("date")),
            version=_as_text(raw.get("version")),
            license=_as_text(raw.get("license")),
            schema=_as_text(raw.get("schema")),
            profile=_as_text(raw.get("profile")),
            keywords=_list("keywords"),
            profiles_of=_list("profilesOf"),
        )
