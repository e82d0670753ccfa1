"""RDF seams: explicit triple model, backend protocols and the rdflib backend."""

from .backend import Dataset, JsonLdToRdf, RdfBackend
from .graph import BlankNode, Iri, Literal, RdfGraph, Triple, TurtleWriter, Vocab
from .rdflib_backend import RdflibBackend

__all__ = [
    "Dataset",
    "JsonLdToRdf",
    "RdfBackend",
    "BlankNode",
    "Iri",
    "Literal",
    "RdfGraph",
    "Triple",
    "TurtleWriter",
    "Vocab",
    "RdflibBackend",
]
