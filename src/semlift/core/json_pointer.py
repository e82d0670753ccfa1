"""
JSON Pointer engine.

Pure get/set/remove over JSON value trees (dicts, lists, scalars) addressed by
slash-delimited pointers (RFC 6901). Mutations never touch their input: each
one rebuilds only the containers along the path and shares everything else.

Usage:
    from semlift.core.json_pointer import get, set_at, remove

    doc = {"a": {"b": [1, 2]}}
    get(doc, "/a/b/1")            # 2
    set_at(doc, "/a/c", "x")      # {"a": {"b": [1, 2], "c": "x"}}
    remove(doc, "/a/b/0")         # {"a": {"b": [2]}}

Pointer syntax:
    ""  or "/"      the whole document
    "/a/b"          member b of member a
    "/items/0"      first array element
    "/items/-"      (set only) append to the array
    "~1" and "~0"   escape "/" and "~" inside a segment
"""

from typing import Any, Dict, List, Sequence

from .errors import SemliftError


class PointerError(SemliftError, KeyError):
    """A pointer does not address an existing value."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()
"""Sentinel distinguishing an absent member from a JSON null."""

APPEND = "-"


# ============================================================================
# Pointer syntax
# ============================================================================

def parse_pointer(pointer: str) -> List[str]:
    """Split ``pointer`` into unescaped reference tokens.

    A blank pointer or a lone ``/`` addresses the root and yields ``[]``.
    A missing leading slash is tolerated.
    """
    if pointer is None:
        raise PointerError("Pointer must be a string")
    text = pointer.strip()
    if text in ("", "/"):
        return []
    if text.startswith("/"):
        text = text[1:]
    return [token.replace("~1", "/").replace("~0", "~") for token in text.split("/")]


def format_pointer(tokens: Sequence[str]) -> str:
    """Join reference tokens into an escaped pointer string."""
    if not tokens:
        return ""
    return "".join("/" + str(t).replace("~", "~0").replace("/", "~1") for t in tokens)


def _index(token: str, pointer: str) -> int:
    if not token.isdigit():
        raise PointerError(f"Array index expected at '{token}' in {pointer}")
    return int(token)


# ============================================================================
# Read
# ============================================================================

def get(document: Any, pointer: str, default: Any = MISSING) -> Any:
    """Return the value at ``pointer``.

    Raises PointerError when the path does not exist, unless ``default`` is given.
    """
    current = document
    for token in parse_pointer(pointer):
        if isinstance(current, dict):
            if token not in current:
                return _absent(pointer, default)
            current = current[token]
        elif isinstance(current, list):
            if not token.isdigit() or int(token) >= len(current):
                return _absent(pointer, default)
            current = current[int(token)]
        else:
            return _absent(pointer, default)
    return current


def _absent(pointer: str, default: Any) -> Any:
    if default is MISSING:
        raise PointerError(f"No value at {pointer}")
    return default


_PROBE = object()


def contains(document: Any, pointer: str) -> bool:
    """True when ``pointer`` addresses an existing value (null included)."""
    return get(document, pointer, default=_PROBE) is not _PROBE


# ============================================================================
# Write
# ============================================================================

def set_at(document: Any, pointer: str, value: Any) -> Any:
    """Return a copy of ``document`` with ``value`` written at ``pointer``.

    Missing intermediate containers are created: an array when the next token
    is numeric (or ``-``), an object otherwise. Writing past the end of an
    array pads it with nulls. Setting the root returns ``value``.
    """
    tokens = parse_pointer(pointer)
    return _set(document, tokens, value, pointer)


def _set(node: Any, tokens: List[str], value: Any, pointer: str) -> Any:
    if not tokens:
        return value
    head, rest = tokens[0], tokens[1:]

    if isinstance(node, list):
        copy = list(node)
        if head == APPEND:
            idx = len(copy)
        else:
            idx = _index(head, pointer)
        while len(copy) <= idx:
            copy.append(None)
        copy[idx] = _set(_child_or_new(copy[idx], rest), rest, value, pointer)
        return copy

    if isinstance(node, dict):
        copy: Dict[str, Any] = dict(node)
        child = copy.get(head, MISSING)
        copy[head] = _set(_child_or_new(child, rest), rest, value, pointer)
        return copy

    if node is None or node is MISSING:
        fresh = [] if (head == APPEND or head.isdigit()) else {}
        return _set(fresh, tokens, value, pointer)

    raise PointerError(f"Cannot descend into scalar at '{head}' in {pointer}")


def _child_or_new(child: Any, rest: List[str]) -> Any:
    if not rest:
        return child
    if isinstance(child, (dict, list)):
        return child
    if child is MISSING or child is None:
        return [] if (rest[0] == APPEND or rest[0].isdigit()) else {}
    return child


def remove(document: Any, pointer: str) -> Any:
    """Return a copy of ``document`` without the value at ``pointer``.

    Array elements are deleted (later elements shift down). Removing a path
    that does not exist returns the document unchanged. Removing the root
    yields None.
    """
    tokens = parse_pointer(pointer)
    if not tokens:
        return None
    if not contains(document, pointer):
        return document
    return _remove(document, tokens)


def _remove(node: Any, tokens: List[str]) -> Any:
    head, rest = tokens[0], tokens[1:]
    if isinstance(node, list):
        idx = int(head)
        copy = list(node)
        if rest:
            copy[idx] = _remove(copy[idx], rest)
        else:
            del copy[idx]
        return copy
    copy = dict(node)
    if rest:
        copy[head] = _remove(copy[head], rest)
    else:
        del copy[head]
    return copy


def move(document: Any, source: str, target: str) -> Any:
    """Move the value at ``source`` to ``target``; a missing source is a no-op."""
    if not contains(document, source):
        return document
    return set_at(remove(document, source), target, get(document, source))
