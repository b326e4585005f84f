"""Multipart and url-encoded form body assembly.

File uploads share the request's form-data store with plain fields. A file
is stored under its field name prefixed with :data:`FILE_FIELD_PREFIX` and
its path as the value; the prefix is stripped when the part is written.
Files are read eagerly so a missing or unreadable path fails before anything
goes on the wire. The encoding itself is delegated to ``httpx``.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

import httpx

from restwire.content import OCTET_STREAM_TYPE
from restwire.exceptions import MiddlewareError
from restwire.values import Values

FILE_FIELD_PREFIX = "@"

FilePart = tuple[str, tuple[str, bytes, str]]


def file_field_key(field: str) -> str:
    return f"{FILE_FIELD_PREFIX}{field}"


def is_file_field(key: str) -> bool:
    return key.startswith(FILE_FIELD_PREFIX)


def split_form_data(form: Values) -> tuple[dict[str, list[str]], list[tuple[str, str]]]:
    """Separate plain fields from ``(field, path)`` file entries."""
    fields: dict[str, list[str]] = {}
    files: list[tuple[str, str]] = []
    for key, value in form.multi_items():
        if is_file_field(key):
            files.append((key[len(FILE_FIELD_PREFIX):], value))
        else:
            fields.setdefault(key, []).append(value)
    return fields, files


def read_file_part(field: str, path: str) -> FilePart:
    """Load one file into an ``httpx`` file tuple named after its base name.

    Raises:
        MiddlewareError: If the file cannot be read.
    """
    file_path = Path(path).expanduser()
    try:
        content = file_path.read_bytes()
    except OSError as exc:
        raise MiddlewareError(f"Cannot read file for field '{field}': {exc}") from exc
    content_type = mimetypes.guess_type(file_path.name)[0] or OCTET_STREAM_TYPE
    return field, (file_path.name, content, content_type)


def build_multipart(method: str, url: str, form: Values) -> tuple[bytes, str]:
    """Encode *form* as ``multipart/form-data``.

    Returns:
        The encoded body and the matching ``Content-Type`` value (with
        boundary).
    """
    fields, files = split_form_data(form)
    parts = [read_file_part(field, path) for field, path in files]
    encoder = httpx.Request(method, url, data=fields, files=parts)
    body = encoder.read()
    return body, encoder.headers["Content-Type"]


def encode_form(method: str, url: str, form: Values) -> bytes:
    """Encode plain form fields as ``application/x-www-form-urlencoded``.

    Repeated keys are grouped in first-seen key order.
    """
    fields, _ = split_form_data(form)
    return httpx.Request(method, url, data=fields).read()
