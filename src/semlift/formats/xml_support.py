"""
XML to JSON tree conversion.

Mapping rules:
    <root id="1"><name>Alpha</name><value unit="kg">10</value></root>
    ->
    {"root": {"@id": "1", "name": "Alpha", "value": {"@unit": "kg", "#text": "10"}}}

- Attributes become ``@name`` members.
- Text-only elements become strings.
- Text next to attributes or children becomes ``#text``.
- Repeated child elements become arrays in document order.
- Namespace URIs are dropped; only local names are kept.
"""

from typing import Any, Dict

from defusedxml import ElementTree as ET
from defusedxml import DefusedXmlException

from ..core.errors import DecodeError


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an ElementTree tag or attribute name."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def element_to_json(element: Any) -> Any:
    """Convert one element (recursively) to a JSON value."""
    attributes = {"@" + local_name(k): v for k, v in element.attrib.items()}
    children = list(element)
    text = (element.text or "").strip()

    if not attributes and not children:
        return text

    node: Dict[str, Any] = dict(attributes)
    for child in children:
        if not isinstance(child.tag, str):
            continue
        name = local_name(child.tag)
        value = element_to_json(child)
        if name in node:
            existing = node[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[name] = [existing, value]
        else:
            node[name] = value
    if text:
        node["#text"] = text
    return node


def parse_xml(data: bytes) -> Any:
    """Parse XML bytes into a ``{root_name: tree}`` JSON value."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise DecodeError(f"Invalid XML: {e}") from e
    except DefusedXmlException as e:
        raise DecodeError(f"Rejected unsafe XML: {e}") from e
    return {local_name(root.tag): element_to_json(root)}
