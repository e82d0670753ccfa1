"""
rdflib + pyshacl implementation of the RDF backend.

Usage:
    backend = RdflibBackend()
    graph = backend.to_dataset(jsonld_bytes, "urn:base:")
    report = backend.shacl_validate(graph, shapes_ttl)
    turtle = backend.serialize(graph, RdfOutput.TURTLE)
"""

import logging

from pyshacl import validate as pyshacl_validate
from rdflib import BNode, Graph, URIRef
from rdflib import Literal as RDFLiteral

from ..core.errors import ConfigurationError, DecodeError
from ..models.documents import RdfOutput, ValidationReport
from .graph import BlankNode, Iri, Literal, RdfGraph, Term

logger = logging.getLogger(__name__)

RDFLIB_FORMATS = {
    RdfOutput.TURTLE: "turtle",
    RdfOutput.JSON_LD: "json-ld",
    RdfOutput.N_TRIPLES: "nt",
}


def _guess_rdf_format(data: bytes) -> str:
    head = data.lstrip()[:1]
    return "json-ld" if head in (b"{", b"[") else "turtle"


def _to_rdflib_term(term: Term):
    if isinstance(term, Iri):
        return URIRef(term.value)
    if isinstance(term, BlankNode):
        return BNode(term.label)
    if term.language:
        return RDFLiteral(term.lexical, lang=term.language)
    if term.datatype:
        return RDFLiteral(term.lexical, datatype=URIRef(term.datatype))
    return RDFLiteral(term.lexical)


class RdflibBackend:
    """RDF backend over in-memory rdflib Graphs."""

    def __init__(self, inference: str = "none"):
        self.inference = inference

    def to_dataset(self, jsonld: bytes, base_iri: str) -> Graph:
        graph = Graph()
        try:
            graph.parse(data=jsonld.decode("utf-8"), format="json-ld", base=base_iri)
        except Exception as e:
            raise DecodeError(f"Failed to parse JSON-LD: {e}") from e
        logger.debug(f"Parsed {len(graph)} triples from JSON-LD")
        return graph

    def serialize(self, dataset: Graph, output: RdfOutput) -> bytes:
        result = dataset.serialize(format=RDFLIB_FORMATS[output])
        return result.encode("utf-8") if isinstance(result, str) else result

    def serialize_graph(self, graph: RdfGraph, output: RdfOutput) -> bytes:
        target = Graph()
        for prefix, namespace in graph.prefixes.items():
            target.bind(prefix, URIRef(namespace), override=True)
        for triple in graph:
            target.add((
                _to_rdflib_term(triple.subject),
                _to_rdflib_term(triple.predicate),
                _to_rdflib_term(triple.object),
            ))
        return self.serialize(target, output)

    def shacl_validate(self, dataset: Graph, shapes: bytes) -> ValidationReport:
        shapes_graph = Graph()
        try:
            shapes_graph.parse(data=shapes.decode("utf-8"), format=_guess_rdf_format(shapes))
        except Exception as e:
            raise ConfigurationError(f"Invalid SHACL shapes document: {e}") from e

        conforms, results_graph, _ = pyshacl_validate(
            dataset,
            shacl_graph=shapes_graph,
            inference=self.inference,
            abort_on_first=False,
        )
        logger.info(f"SHACL validation {'conforms' if conforms else 'does not conform'}")
        return ValidationReport(
            conforms=bool(conforms),
            report=results_graph.serialize(format="turtle").encode("utf-8"),
        )

    def sparql_construct(self, dataset: Graph, query: str) -> Graph:
        try:
            result = dataset.query(query)
        except Exception as e:
            raise ConfigurationError(f"Invalid SPARQL CONSTRUCT query: {e}") from e
        if result.type != "CONSTRUCT":
            raise ConfigurationError(f"Expected a CONSTRUCT query, got {result.type}")
        constructed = Graph()
        for prefix, namespace in dataset.namespaces():
            constructed.bind(prefix, namespace, override=False)
        for triple in result:
            constructed.add(triple)
        return constructed

    def sparql_update(self, dataset: Graph, update: str) -> Graph:
        try:
            dataset.update(update)
        except Exception as e:
            raise ConfigurationError(f"Invalid SPARQL update: {e}") from e
        return dataset
