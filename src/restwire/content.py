"""Content negotiation: body kinds, content-type detection, marshal and unmarshal.

Request bodies come in three kinds (:class:`BodyKind`) decided by an explicit
capability check on the value rather than deep inspection:

* ``BYTES`` -- ``bytes``, ``bytearray`` or ``memoryview``; sent as-is and
  content-sniffed when no ``Content-Type`` is set.
* ``TEXT`` -- ``str``; sent UTF-8 encoded as ``text/plain``.
* ``STRUCTURED`` -- mappings, lists, tuples, pydantic models and dataclass
  instances; marshalled to JSON (or XML when the request says so).

Content-type classification is deliberately loose: anything containing
``json`` is JSON and anything containing ``xml`` is XML, case-insensitively.

Reply bodies are decoded and validated into caller-supplied *containers*
with :class:`pydantic.TypeAdapter`. A container is either a type (a pydantic
model, a dataclass, ``dict``, ``list[Item]``...) or a mutable instance that
is filled in place.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import typing
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

from restwire.exceptions import SerializationError

PLAIN_TEXT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
OCTET_STREAM_TYPE = "application/octet-stream"

XML_DEFAULT_ROOT = "root"

_SNIFF_LEN = 512


class BodyKind(str, enum.Enum):
    """The serialisation capability of a request body value."""

    BYTES = "bytes"
    TEXT = "text"
    STRUCTURED = "structured"


def body_kind(value: Any) -> BodyKind:
    """Classify *value* into one of the three body kinds.

    Values that are neither bytes, text nor structured fall back to
    ``TEXT`` and are sent as their ``str()`` form.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BodyKind.BYTES
    if isinstance(value, str):
        return BodyKind.TEXT
    if is_structured(value):
        return BodyKind.STRUCTURED
    return BodyKind.TEXT


def is_structured(value: Any) -> bool:
    """Return ``True`` for record- or collection-like values that need marshalling."""
    if isinstance(value, (Mapping, list, tuple, BaseModel)):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_json_type(content_type: str | None) -> bool:
    return bool(content_type) and "json" in content_type.lower()


def is_xml_type(content_type: str | None) -> bool:
    return bool(content_type) and "xml" in content_type.lower()


def is_plain_text_type(content_type: str | None) -> bool:
    return bool(content_type) and "text/plain" in content_type.lower()


def detect_content_type(value: Any) -> str:
    """Return the natural content type of a body value."""
    kind = body_kind(value)
    if kind is BodyKind.STRUCTURED:
        return JSON_CONTENT_TYPE
    if kind is BodyKind.BYTES:
        return sniff_content_type(bytes(value))
    return PLAIN_TEXT_TYPE


# ------------------------------------------------------------------ #
# Byte sniffing
# ------------------------------------------------------------------ #

# Case-insensitive HTML openers; each must be followed by a space or ">".
_HTML_SIGNATURES = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)

_EXACT_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", PLAIN_TEXT_TYPE),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"BM", "image/bmp"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"OggS\x00", "application/ogg"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)

_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)
_WHITESPACE = b"\t\n\x0c\r "


def sniff_content_type(data: bytes) -> str:
    """Guess the content type of raw bytes from their leading signature.

    Only the first 512 bytes are examined. Unknown data without binary
    control bytes is reported as UTF-8 plain text, anything else as
    ``application/octet-stream``.
    """
    head = data[:_SNIFF_LEN]
    stripped = head.lstrip(_WHITESPACE)
    upper = stripped.upper()

    for signature in _HTML_SIGNATURES:
        if upper.startswith(signature):
            tail = stripped[len(signature):len(signature) + 1]
            if tail in (b" ", b">"):
                return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"

    for signature, content_type in _EXACT_SIGNATURES:
        if head.startswith(signature):
            return content_type
    if head[:4] == b"RIFF" and head[8:14] == b"WEBPVP":
        return "image/webp"

    if any(byte in _BINARY_BYTES for byte in head):
        return OCTET_STREAM_TYPE
    return PLAIN_TEXT_TYPE


# ------------------------------------------------------------------ #
# Marshal
# ------------------------------------------------------------------ #


def to_plain(value: Any) -> Any:
    """Convert models, dataclasses and tuples into JSON-compatible data."""
    try:
        return to_jsonable_python(value)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot serialise {type(value).__name__}: {exc}") from exc


def marshal(content_type: str | None, value: Any) -> bytes:
    """Encode a body value for the given content type.

    Structured values become JSON or XML according to *content_type* (JSON
    when the type is neither). Text is UTF-8 encoded and bytes pass through.

    Raises:
        SerializationError: If the value cannot be encoded.
    """
    kind = body_kind(value)
    if kind is BodyKind.BYTES:
        return bytes(value)
    if kind is BodyKind.TEXT:
        return str(value).encode("utf-8")

    if is_xml_type(content_type):
        return ET.tostring(_to_xml_element(value), encoding="utf-8")
    try:
        return json.dumps(to_plain(value), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode body as JSON: {exc}") from exc


def xml_root_name(value: Any) -> str:
    """Element name wrapping a marshalled structured value."""
    if isinstance(value, BaseModel) or dataclasses.is_dataclass(value):
        return type(value).__name__
    return XML_DEFAULT_ROOT


def _to_xml_element(value: Any) -> ET.Element:
    root = ET.Element(xml_root_name(value))
    _fill_element(root, to_plain(value))
    return root


def _fill_element(element: ET.Element, data: Any) -> None:
    if isinstance(data, Mapping):
        for key, item in data.items():
            tag = str(key)
            if tag.startswith("@"):
                element.set(tag[1:], _xml_text(item))
            elif tag == "#text":
                element.text = _xml_text(item)
            elif isinstance(item, list):
                for entry in item:
                    _fill_element(ET.SubElement(element, tag), entry)
            else:
                _fill_element(ET.SubElement(element, tag), item)
    elif isinstance(data, list):
        for entry in data:
            _fill_element(ET.SubElement(element, "item"), entry)
    elif data is not None:
        element.text = _xml_text(data)


def _xml_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


# ------------------------------------------------------------------ #
# Unmarshal
# ------------------------------------------------------------------ #


def decode(content_type: str | None, data: bytes) -> Any:
    """Decode reply bytes into plain data; ``None`` when the type is neither JSON nor XML.

    XML documents decode to the content of their root element: child
    elements become keys (repeated children become lists), attributes become
    ``@name`` keys and text mixed with children lands under ``#text``.

    Raises:
        SerializationError: If the bytes are not valid for the content type.
    """
    if is_json_type(content_type):
        try:
            return json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SerializationError(f"Invalid JSON body: {exc}") from exc
    if is_xml_type(content_type):
        try:
            root = ET.fromstring(data)
        except ET.ParseError as exc:
            raise SerializationError(f"Invalid XML body: {exc}") from exc
        return _element_to_data(root)
    return None


def _element_to_data(element: ET.Element) -> Any:
    children = list(element)
    if not children and not element.attrib:
        return element.text.strip() if element.text and element.text.strip() else None

    data: dict[str, Any] = {f"@{name}": value for name, value in element.attrib.items()}
    for child in children:
        value = _element_to_data(child)
        if child.tag in data:
            existing = data[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                data[child.tag] = [existing, value]
        else:
            data[child.tag] = value
    if element.text and element.text.strip():
        data["#text"] = element.text.strip()
    return data


def unmarshal(content_type: str | None, data: bytes, container: Any) -> Any:
    """Decode *data* and validate it into *container*.

    Returns the populated value: a new instance when *container* is a type,
    the same object when it is a mutable ``dict`` or ``list``. When the
    content type is neither JSON nor XML the container is returned untouched.

    Raises:
        SerializationError: On malformed bodies or validation failures.
    """
    if not (is_json_type(content_type) or is_xml_type(content_type)):
        return container
    return populate(container, decode(content_type, data))


def populate(container: Any, decoded: Any) -> Any:
    """Validate already-decoded data into *container*."""
    try:
        if isinstance(container, type) or typing.get_origin(container) is not None:
            return TypeAdapter(container).validate_python(decoded)
        if isinstance(container, BaseModel):
            return type(container).model_validate(decoded)
        if isinstance(container, dict):
            if not isinstance(decoded, Mapping):
                raise SerializationError(
                    f"Cannot fill a dict container from {type(decoded).__name__}"
                )
            container.update(decoded)
            return container
        if isinstance(container, list):
            if not isinstance(decoded, list):
                raise SerializationError(
                    f"Cannot fill a list container from {type(decoded).__name__}"
                )
            container[:] = decoded
            return container
        return TypeAdapter(type(container)).validate_python(decoded)
    except ValidationError as exc:
        raise SerializationError(f"Body does not match {_container_name(container)}: {exc}") from exc


def _container_name(container: Any) -> str:
    if isinstance(container, type):
        return container.__name__
    return type(container).__name__


# ------------------------------------------------------------------ #
# Pretty printing (debug log)
# ------------------------------------------------------------------ #


def indent_json(data: bytes | str) -> str | None:
    """Re-indent a JSON document with two spaces; ``None`` if it does not parse."""
    try:
        return json.dumps(json.loads(data), indent=2, ensure_ascii=False)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        return None


def indent_xml(data: bytes | str) -> str | None:
    """Re-indent an XML document with two spaces; ``None`` if it does not parse."""
    try:
        element = ET.fromstring(data)
    except ET.ParseError:
        return None
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")
