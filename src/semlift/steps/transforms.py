"""
Native JSON transforms.

A transform is any pure JSON-to-JSON callable. Plans reference one as
``module:attribute``; the attribute may be:

    - a function or other callable taking the document
    - an object with an ``apply(document)`` method
    - a class with ``apply`` (instantiated without arguments)
    - a factory exposing ``create()`` that returns one of the above

JsonTransformBuilder composes pointer operations into a transform:

    transform = (
        JsonTransformBuilder()
        .default("/status", "active")
        .move("/identifier", "/code")
        .map_array("/items", JsonTransformBuilder().remove("/internal"))
        .build()
    )
    transform({"identifier": "abc", "items": [{"internal": 1, "v": 2}]})
"""

import importlib
import inspect
from dataclasses import dataclass
from typing import Any, Callable, List, Protocol, Union, runtime_checkable

from ..core import json_pointer
from ..core.errors import ConfigurationError


@runtime_checkable
class JsonTransform(Protocol):
    """Pure function from one JSON value to another."""

    def apply(self, document: Any) -> Any:
        ...


def as_callable(target: Any, reference: str = "") -> Callable[[Any], Any]:
    """Normalize a transform target to a plain callable."""
    label = reference or repr(target)
    if inspect.isclass(target):
        if hasattr(target, "apply"):
            return as_callable(target(), reference)
        if callable(getattr(target, "create", None)):
            return as_callable(target.create(), reference)
        raise ConfigurationError(f"Transform class {label} has no apply or create method")
    if isinstance(target, JsonTransform):
        return target.apply
    if hasattr(target, "create") and callable(target.create):
        return as_callable(target.create(), reference)
    if callable(target):
        return target
    raise ConfigurationError(f"{label} is not a JSON transform")


def load_transform(reference: str) -> Callable[[Any], Any]:
    """Import ``module:attribute`` (or ``module.attribute``) and return it as a callable."""
    ref = (reference or "").strip()
    if ":" in ref:
        module_name, _, attribute = ref.partition(":")
    else:
        module_name, _, attribute = ref.rpartition(".")
    if not module_name or not attribute:
        raise ConfigurationError(f"Transform reference must be 'module:attribute', got {reference!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import transform module {module_name}: {e}")
    target: Any = module
    for part in attribute.split("."):
        if not hasattr(target, part):
            raise ConfigurationError(f"Transform {reference} not found")
        target = getattr(target, part)
    return as_callable(target, reference)


# ============================================================================
# Operation builder
# ============================================================================

@dataclass(frozen=True)
class _Set:
    path: str
    value: Any

    def __call__(self, document: Any) -> Any:
        return json_pointer.set_at(document, self.path, self.value)


@dataclass(frozen=True)
class _Remove:
    path: str

    def __call__(self, document: Any) -> Any:
        return json_pointer.remove(document, self.path)


@dataclass(frozen=True)
class _Move:
    source: str
    target: str

    def __call__(self, document: Any) -> Any:
        return json_pointer.move(document, self.source, self.target)


@dataclass(frozen=True)
class _Default:
    path: str
    value: Any

    def __call__(self, document: Any) -> Any:
        if json_pointer.get(document, self.path, default=None) is None:
            return json_pointer.set_at(document, self.path, self.value)
        return document


@dataclass(frozen=True)
class _MapArray:
    path: str
    transform: Callable[[Any], Any]

    def __call__(self, document: Any) -> Any:
        target = json_pointer.get(document, self.path, default=None)
        if not isinstance(target, list):
            return document
        return json_pointer.set_at(document, self.path, [self.transform(item) for item in target])


class OperationTransform:
    """Applies a fixed sequence of pointer operations."""

    def __init__(self, operations: List[Callable[[Any], Any]]):
        self._operations = tuple(operations)

    def apply(self, document: Any) -> Any:
        for operation in self._operations:
            document = operation(document)
        return document

    __call__ = apply


class JsonTransformBuilder:
    """Fluent builder for pointer-operation transforms."""

    def __init__(self) -> None:
        self._operations: List[Callable[[Any], Any]] = []

    def set(self, path: str, value: Any) -> 'JsonTransformBuilder':
        self._operations.append(_Set(path, value))
        return self

    def remove(self, path: str) -> 'JsonTransformBuilder':
        self._operations.append(_Remove(path))
        return self

    def move(self, source: str, target: str) -> 'JsonTransformBuilder':
        self._operations.append(_Move(source, target))
        return self

    def default(self, path: str, value: Any) -> 'JsonTransformBuilder':
        """Set ``value`` when ``path`` is missing or null."""
        self._operations.append(_Default(path, value))
        return self

    def map_array(
        self,
        path: str,
        transform: Union['JsonTransformBuilder', Callable[[Any], Any]],
    ) -> 'JsonTransformBuilder':
        """Apply ``transform`` to each element of the array at ``path``."""
        if isinstance(transform, JsonTransformBuilder):
            transform = transform.build()
        self._operations.append(_MapArray(path, transform))
        return self

    def build(self) -> OperationTransform:
        return OperationTransform(self._operations)
