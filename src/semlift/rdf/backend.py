"""
RDF backend seams.

The pipeline never builds RDF itself: it prepares JSON-LD and hands it to a
JsonLdToRdf parser, then runs post-steps and serialization through an
RdfBackend. ``Dataset`` is whatever object the backend uses (an rdflib Graph
for RdflibBackend).
"""

from typing import Any, Protocol, runtime_checkable

from ..models.documents import RdfOutput, ValidationReport
from .graph import RdfGraph

Dataset = Any


@runtime_checkable
class JsonLdToRdf(Protocol):
    def to_dataset(self, jsonld: bytes, base_iri: str) -> Dataset:
        """Parse a JSON-LD document into a dataset, resolving relative IRIs against ``base_iri``."""
        ...


@runtime_checkable
class RdfBackend(JsonLdToRdf, Protocol):
    """Serialization, SHACL validation and SPARQL over datasets."""

    def serialize(self, dataset: Dataset, output: RdfOutput) -> bytes:
        ...

    def serialize_graph(self, graph: RdfGraph, output: RdfOutput) -> bytes:
        ...

    def shacl_validate(self, dataset: Dataset, shapes: bytes) -> ValidationReport:
        ...

    def sparql_construct(self, dataset: Dataset, query: str) -> Dataset:
        ...

    def sparql_update(self, dataset: Dataset, update: str) -> Dataset:
        ...
