"""
Explicit triple model and minimal Turtle writer.

The SHACL compiler builds an RdfGraph without touching a store, so its
output is deterministic and inspectable in tests. Serialization can go
through the RDF backend (``RdfBackend.serialize_graph``) or TurtleWriter,
which writes one full-IRI triple per line.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Union

from rdflib.namespace import RDF, RDFS, SH, XSD


@dataclass(frozen=True)
class Iri:
    value: str


@dataclass(frozen=True)
class BlankNode:
    label: str


@dataclass(frozen=True)
class Literal:
    """A literal; plain strings have neither datatype nor language."""
    lexical: str
    datatype: Optional[str] = None
    language: Optional[str] = None


Subject = Union[Iri, BlankNode]
Term = Union[Iri, BlankNode, Literal]


@dataclass(frozen=True)
class Triple:
    subject: Subject
    predicate: Iri
    object: Term


class Vocab:
    """IRIs used when building shape graphs."""
    RDF_TYPE = Iri(str(RDF.type))
    RDF_FIRST = Iri(str(RDF.first))
    RDF_REST = Iri(str(RDF.rest))
    RDF_NIL = Iri(str(RDF.nil))
    RDFS_LABEL = Iri(str(RDFS.label))

    SH_NODE_SHAPE = Iri(str(SH.NodeShape))
    SH_PROPERTY_SHAPE = Iri(str(SH.PropertyShape))
    SH_PROPERTY = Iri(str(SH.property))
    SH_PATH = Iri(str(SH.path))
    SH_TARGET_CLASS = Iri(str(SH.targetClass))
    SH_NAME = Iri(str(SH.name))
    SH_DATATYPE = Iri(str(SH.datatype))
    SH_NODE = Iri(str(SH.node))
    SH_IN = Iri(str(SH["in"]))
    SH_PATTERN = Iri(str(SH.pattern))
    SH_MIN_COUNT = Iri(str(SH.minCount))
    SH_MAX_COUNT = Iri(str(SH.maxCount))
    SH_MIN_LENGTH = Iri(str(SH.minLength))
    SH_MAX_LENGTH = Iri(str(SH.maxLength))
    SH_MIN_INCLUSIVE = Iri(str(SH.minInclusive))
    SH_MAX_INCLUSIVE = Iri(str(SH.maxInclusive))
    SH_MIN_EXCLUSIVE = Iri(str(SH.minExclusive))
    SH_MAX_EXCLUSIVE = Iri(str(SH.maxExclusive))

    XSD_STRING = str(XSD.string)
    XSD_INTEGER = str(XSD.integer)
    XSD_DECIMAL = str(XSD.decimal)
    XSD_BOOLEAN = str(XSD.boolean)


def integer_literal(value: int) -> Literal:
    return Literal(str(value), Vocab.XSD_INTEGER)


class RdfGraph:
    """Ordered list of triples plus prefix bindings."""

    def __init__(self) -> None:
        self.prefixes: Dict[str, str] = {}
        self._triples: List[Triple] = []

    def bind(self, prefix: str, namespace: str) -> None:
        self.prefixes[prefix] = namespace

    def add(self, subject: Subject, predicate: Iri, obj: Term) -> None:
        self._triples.append(Triple(subject, predicate, obj))

    def objects(self, subject: Subject, predicate: Iri) -> List[Term]:
        return [t.object for t in self._triples if t.subject == subject and t.predicate == predicate]

    def subjects(self, predicate: Iri, obj: Term) -> List[Subject]:
        return [t.subject for t in self._triples if t.predicate == predicate and t.object == obj]

    def list_items(self, head: Term) -> List[Term]:
        """Members of the RDF collection starting at ``head``."""
        items: List[Term] = []
        node = head
        while node != Vocab.RDF_NIL:
            firsts = self.objects(node, Vocab.RDF_FIRST)
            rests = self.objects(node, Vocab.RDF_REST)
            if not firsts or not rests:
                break
            items.append(firsts[0])
            node = rests[0]
        return items

    def __iter__(self) -> Iterator[Triple]:
        return iter(self._triples)

    def __len__(self) -> int:
        return len(self._triples)


# ============================================================================
# Turtle writer
# ============================================================================

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


class TurtleWriter:
    """Writes an RdfGraph as Turtle, one triple per line."""

    def format_term(self, term: Term) -> str:
        if isinstance(term, Iri):
            return f"<{term.value}>"
        if isinstance(term, BlankNode):
            return f"_:{term.label}"
        text = f'"{_escape(term.lexical)}"'
        if term.language:
            return f"{text}@{term.language}"
        if term.datatype:
            return f"{text}^^<{term.datatype}>"
        return text

    def write(self, graph: RdfGraph) -> str:
        lines = [f"@prefix {prefix}: <{ns}> ." for prefix, ns in sorted(graph.prefixes.items())]
        if lines:
            lines.append("")
        for triple in graph:
            lines.append(
                f"{self.format_term(triple.subject)} {self.format_term(triple.predicate)} "
                f"{self.format_term(triple.object)} ."
            )
        return "\n".join(lines) + "\n"
