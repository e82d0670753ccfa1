"""
JSON Schema to SHACL compiler.

Compiles one JSON Schema object into a node shape with one property shape per
declared property (including properties from ``allOf`` branches). Property
paths come from the JSON-LD context when it defines the term, otherwise from
the configured property namespace.

Usage:
    compiler = JsonSchemaToShacl(ShaclConfig(target_class="https://example.org/Person"))
    graph = compiler.build(schema_bytes, context_bytes)     # RdfGraph
    turtle = compiler.generate(schema_bytes, context_bytes)  # Turtle text

Constraint mapping:
    enum                         -> sh:in (RDF list, literals typed by JSON type)
    pattern                      -> sh:pattern
    minLength / maxLength        -> sh:minLength / sh:maxLength
    minimum / maximum            -> sh:minInclusive / sh:maxInclusive
    exclusiveMinimum / ...Maximum-> sh:minExclusive / sh:maxExclusive
    type string|integer|number|boolean -> sh:datatype xsd:*
    type object                  -> sh:node <ns><prop>Shape (compiled recursively)
    type array                   -> sh:minCount/sh:maxCount from minItems/maxItems,
                                    items mapped to a datatype or <ns><prop>Item shape
    required                     -> sh:minCount 1
"""

import json
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from rdflib.namespace import RDF, SH, XSD

from ..constants import ShaclDefaults
from ..core.errors import ConfigurationError
from ..models.documents import RdfOutput
from ..rdf.backend import RdfBackend
from ..rdf.graph import BlankNode, Iri, Literal, RdfGraph, Subject, Term, TurtleWriter, Vocab, integer_literal

logger = logging.getLogger(__name__)

JsonInput = Union[bytes, str, Mapping[str, Any], List[Any], None]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_INTEGER_TEXT = re.compile(r"^-?\d+$")

DATATYPES = {
    "string": Vocab.XSD_STRING,
    "integer": Vocab.XSD_INTEGER,
    "number": Vocab.XSD_DECIMAL,
    "boolean": Vocab.XSD_BOOLEAN,
}

BOUNDS = (
    ("minimum", Vocab.SH_MIN_INCLUSIVE),
    ("maximum", Vocab.SH_MAX_INCLUSIVE),
    ("exclusiveMinimum", Vocab.SH_MIN_EXCLUSIVE),
    ("exclusiveMaximum", Vocab.SH_MAX_EXCLUSIVE),
)


@dataclass(frozen=True)
class ShaclConfig:
    """Compiler options.

    Attributes:
        target_namespace: Namespace of generated shape IRIs.
        property_namespace: Namespace for properties the context does not
            define (defaults to ``target_namespace``).
        target_class: Optional ``sh:targetClass`` of the root shape.
        shape_name: Root shape local name (default: schema ``title``, else ``Root``).
        include_labels: Emit ``rdfs:label`` on node shapes and ``sh:name`` on
            property shapes.
    """
    target_namespace: str = ShaclDefaults.TARGET_NAMESPACE
    property_namespace: Optional[str] = None
    target_class: Optional[str] = None
    shape_name: Optional[str] = None
    include_labels: bool = True


# ============================================================================
# Helpers
# ============================================================================

def sanitize(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``_``."""
    return _UNSAFE_CHARS.sub("_", name)


def _load_json(value: JsonInput, what: str) -> Any:
    if value is None or isinstance(value, (Mapping, list)):
        return value
    text = value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else value
    try:
        return json.loads(text, parse_float=Decimal)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {what} JSON: {e}") from e


def _context_objects(context: Any) -> List[Mapping[str, Any]]:
    if isinstance(context, Mapping) and "@context" in context:
        context = context["@context"]
    if isinstance(context, Mapping):
        return [context]
    if isinstance(context, list):
        return [entry for entry in context if isinstance(entry, Mapping)]
    return []


def _looks_like_namespace(value: str) -> bool:
    return value.endswith(("#", "/", ":"))


def context_prefixes(context: Any) -> Dict[str, str]:
    """Context terms that declare namespaces (``@prefix: true`` or ending in # / :)."""
    prefixes: Dict[str, str] = {}
    for obj in _context_objects(context):
        for key, value in obj.items():
            if key.startswith("@"):
                continue
            if isinstance(value, Mapping) and "@id" in value and value.get("@prefix") is True:
                prefixes[key] = str(value["@id"])
            elif isinstance(value, str) and _looks_like_namespace(value):
                prefixes[key] = value
    return prefixes


def context_terms(context: Any) -> Dict[str, str]:
    """Term -> IRI for string terms and ``{"@id": ...}`` terms. Compact IRIs are expanded."""
    prefixes = context_prefixes(context)
    terms: Dict[str, str] = {}
    for obj in _context_objects(context):
        for key, value in obj.items():
            if key.startswith("@"):
                continue
            iri = value.get("@id") if isinstance(value, Mapping) else value
            # keyword aliases such as "id": "@id" name no property
            if isinstance(iri, str) and not iri.startswith("@"):
                terms[key] = iri
    for key, value in terms.items():
        prefix, sep, local = value.partition(":")
        if sep and prefix in prefixes and not local.startswith("//"):
            terms[key] = prefixes[prefix] + local
    return terms


def _plain_number(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def numeric_literal(value: Any) -> Literal:
    """Integer literal when the text is ``-?\\d+``, decimal otherwise."""
    text = _plain_number(value).strip()
    if _INTEGER_TEXT.match(text):
        return Literal(str(int(text)), Vocab.XSD_INTEGER)
    try:
        return Literal(format(Decimal(text), "f"), Vocab.XSD_DECIMAL)
    except ArithmeticError as e:
        raise ConfigurationError(f"Not a numeric bound: {value!r}") from e


def enum_literal(value: Any) -> Literal:
    """Literal typed after the JSON type of ``value``."""
    if isinstance(value, bool):
        return Literal("true" if value else "false", Vocab.XSD_BOOLEAN)
    if isinstance(value, int):
        return integer_literal(value)
    if isinstance(value, (float, Decimal)):
        return Literal(_plain_number(value), Vocab.XSD_DECIMAL)
    if isinstance(value, str):
        return Literal(value)
    return Literal(json.dumps(value, separators=(",", ":"), default=str))


def schema_type(schema: Mapping[str, Any]) -> Optional[str]:
    """The schema ``type``; for a type list, the first non-null entry."""
    value = schema.get("type")
    if isinstance(value, list):
        value = next((t for t in value if t != "null"), None)
    return value if isinstance(value, str) else None


def _local_name(iri: str) -> str:
    for sep in ("#", "/", ":"):
        if sep in iri:
            iri = iri.rsplit(sep, 1)[1]
    return iri


# ============================================================================
# Compiler
# ============================================================================

class JsonSchemaToShacl:
    """Deterministic JSON Schema to SHACL shape compiler."""

    def __init__(self, config: Optional[ShaclConfig] = None):
        self.config = config or ShaclConfig()
        self.property_namespace = self.config.property_namespace or self.config.target_namespace
        self._bnode_counter = 0
        self._list_counter = 0

    def build(self, schema: JsonInput, context: JsonInput = None) -> RdfGraph:
        """Compile ``schema`` into an RdfGraph of shapes."""
        schema_doc = _load_json(schema, "schema")
        if not isinstance(schema_doc, Mapping):
            raise ConfigurationError("JSON Schema root must be an object")
        context_doc = _load_json(context, "context")

        self._bnode_counter = 0
        self._list_counter = 0
        terms = context_terms(context_doc)

        graph = RdfGraph()
        graph.bind("sh", str(SH))
        graph.bind("xsd", str(XSD))
        graph.bind("rdf", str(RDF))
        graph.bind("semlift", self.config.target_namespace)
        for prefix, namespace in context_prefixes(context_doc).items():
            graph.bind(prefix, namespace)

        name = self.config.shape_name or schema_doc.get("title") or ShaclDefaults.ROOT_SHAPE_NAME
        root = Iri(f"{self.config.target_namespace}{sanitize(str(name))}")
        self._node_shape(graph, root, schema_doc, terms, is_root=True)
        logger.info(f"Generated {len(graph)} SHACL triples for shape {root.value}")
        return graph

    def generate(
        self,
        schema: JsonInput,
        context: JsonInput = None,
        backend: Optional[RdfBackend] = None,
    ) -> str:
        """Compile and serialize as Turtle (through ``backend`` when given)."""
        graph = self.build(schema, context)
        if backend is not None:
            return backend.serialize_graph(graph, RdfOutput.TURTLE).decode("utf-8")
        return TurtleWriter().write(graph)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def _node_shape(
        self,
        graph: RdfGraph,
        shape: Iri,
        schema: Mapping[str, Any],
        terms: Dict[str, str],
        is_root: bool = False,
    ) -> None:
        graph.add(shape, Vocab.RDF_TYPE, Vocab.SH_NODE_SHAPE)
        if is_root and self.config.target_class:
            graph.add(shape, Vocab.SH_TARGET_CLASS, Iri(self.config.target_class))
        if self.config.include_labels:
            graph.add(shape, Vocab.RDFS_LABEL, Literal(_local_name(shape.value)))

        properties, required = self._collect_properties(schema)
        for name, prop_schema in properties.items():
            prop_shape = self._bnode()
            graph.add(shape, Vocab.SH_PROPERTY, prop_shape)
            graph.add(prop_shape, Vocab.RDF_TYPE, Vocab.SH_PROPERTY_SHAPE)
            graph.add(prop_shape, Vocab.SH_PATH, Iri(self._property_iri(name, terms)))
            if self.config.include_labels:
                graph.add(prop_shape, Vocab.SH_NAME, Literal(name))
            if name in required:
                graph.add(prop_shape, Vocab.SH_MIN_COUNT, integer_literal(1))
            if isinstance(prop_schema, Mapping):
                self._property_constraints(graph, prop_shape, prop_schema, terms, name)

    @staticmethod
    def _collect_properties(schema: Mapping[str, Any]) -> Tuple[Dict[str, Any], Set[str]]:
        properties: Dict[str, Any] = dict(schema.get("properties") or {})
        required: Set[str] = set(schema.get("required") or [])
        for branch in schema.get("allOf") or []:
            if isinstance(branch, Mapping):
                properties.update(branch.get("properties") or {})
                required.update(branch.get("required") or [])
        return properties, required

    def _property_iri(self, name: str, terms: Dict[str, str]) -> str:
        return terms.get(name) or f"{self.property_namespace}{sanitize(name)}"

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def _property_constraints(
        self,
        graph: RdfGraph,
        prop_shape: Subject,
        schema: Mapping[str, Any],
        terms: Dict[str, str],
        name: str,
    ) -> None:
        self._value_constraints(graph, prop_shape, schema)

        kind = schema_type(schema)
        if kind in DATATYPES:
            graph.add(prop_shape, Vocab.SH_DATATYPE, Iri(DATATYPES[kind]))
        elif kind == "object":
            nested = Iri(f"{self.config.target_namespace}{sanitize(name)}Shape")
            graph.add(prop_shape, Vocab.SH_NODE, nested)
            self._node_shape(graph, nested, schema, terms)
        elif kind == "array":
            if schema.get("minItems") is not None:
                graph.add(prop_shape, Vocab.SH_MIN_COUNT, integer_literal(int(schema["minItems"])))
            if schema.get("maxItems") is not None:
                graph.add(prop_shape, Vocab.SH_MAX_COUNT, integer_literal(int(schema["maxItems"])))
            items = schema.get("items")
            if isinstance(items, Mapping):
                self._item_constraints(graph, prop_shape, items, terms, name)

    def _item_constraints(
        self,
        graph: RdfGraph,
        prop_shape: Subject,
        items: Mapping[str, Any],
        terms: Dict[str, str],
        name: str,
    ) -> None:
        item_kind = schema_type(items)
        if item_kind in DATATYPES:
            self._value_constraints(graph, prop_shape, items)
            graph.add(prop_shape, Vocab.SH_DATATYPE, Iri(DATATYPES[item_kind]))
        elif item_kind == "object":
            nested = Iri(f"{self.config.target_namespace}{sanitize(name)}Item")
            graph.add(prop_shape, Vocab.SH_NODE, nested)
            self._node_shape(graph, nested, items, terms)

    def _value_constraints(self, graph: RdfGraph, prop_shape: Subject, schema: Mapping[str, Any]) -> None:
        values = schema.get("enum")
        if isinstance(values, list):
            graph.add(prop_shape, Vocab.SH_IN, self._rdf_list(graph, [enum_literal(v) for v in values]))
        if schema.get("pattern") is not None:
            graph.add(prop_shape, Vocab.SH_PATTERN, Literal(str(schema["pattern"])))
        if schema.get("minLength") is not None:
            graph.add(prop_shape, Vocab.SH_MIN_LENGTH, integer_literal(int(schema["minLength"])))
        if schema.get("maxLength") is not None:
            graph.add(prop_shape, Vocab.SH_MAX_LENGTH, integer_literal(int(schema["maxLength"])))
        for keyword, predicate in BOUNDS:
            value = schema.get(keyword)
            # draft-04 boolean exclusive flags carry no bound of their own
            if value is not None and not isinstance(value, bool):
                graph.add(prop_shape, predicate, numeric_literal(value))

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _bnode(self) -> BlankNode:
        self._bnode_counter += 1
        return BlankNode(f"b{self._bnode_counter}")

    def _rdf_list(self, graph: RdfGraph, values: List[Term]) -> Term:
        if not values:
            return Vocab.RDF_NIL
        self._list_counter += 1
        head = BlankNode(f"l{self._list_counter}")
        current = head
        for index, value in enumerate(values):
            graph.add(current, Vocab.RDF_FIRST, value)
            if index == len(values) - 1:
                graph.add(current, Vocab.RDF_REST, Vocab.RDF_NIL)
            else:
                self._list_counter += 1
                following = BlankNode(f"l{self._list_counter}")
                graph.add(current, Vocab.RDF_REST, following)
                current = following
        return head
