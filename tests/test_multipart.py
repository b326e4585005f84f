"""Tests for multipart and url-encoded form assembly."""

from __future__ import annotations

from pathlib import Path

import pytest

from restwire.exceptions import MiddlewareError
from restwire.multipart import (
    build_multipart,
    encode_form,
    file_field_key,
    is_file_field,
    read_file_part,
    split_form_data,
)
from restwire.values import Values


class TestFileFields:
    def test_prefix(self) -> None:
        assert file_field_key("avatar") == "@avatar"
        assert is_file_field("@avatar")
        assert not is_file_field("avatar")

    def test_split(self) -> None:
        form = Values({"title": "Q3", "@doc": "/tmp/a.txt", "tag": ["x", "y"]})
        fields, files = split_form_data(form)
        assert fields == {"title": ["Q3"], "tag": ["x", "y"]}
        assert files == [("doc", "/tmp/a.txt")]


class TestReadFilePart:
    def test_reads_and_guesses_type(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        path.write_bytes(b"{}")
        assert read_file_part("payload", str(path)) == (
            "payload",
            ("data.json", b"{}", "application/json"),
        )

    def test_unknown_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "blob.unknownext"
        path.write_bytes(b"\x00")
        _, (_, _, content_type) = read_file_part("f", str(path))
        assert content_type == "application/octet-stream"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MiddlewareError, match="'f'"):
            read_file_part("f", str(tmp_path / "nope"))


class TestEncoding:
    def test_build_multipart(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello upload")
        form = Values({"@attachment": str(path), "subject": "hi"})

        body, content_type = build_multipart("POST", "https://example.com/up", form)

        assert content_type.startswith("multipart/form-data; boundary=")
        boundary = content_type.split("boundary=", 1)[1]
        assert body.count(f"--{boundary}".encode()) == 3
        assert b'name="attachment"; filename="notes.txt"' in body
        assert b"Content-Type: text/plain" in body
        assert b"hello upload" in body
        assert b'name="subject"' in body

    def test_encode_form_repeats_keys(self) -> None:
        form = Values({"a": ["1", "2"], "b": "x y"})
        assert encode_form("POST", "https://example.com/f", form) == b"a=1&a=2&b=x+y"

    def test_encode_form_escapes_reserved_characters(self) -> None:
        form = Values({"q": "a&b=c", "path": "/x/y"})
        assert encode_form("POST", "https://example.com/f", form) == b"q=a%26b%3Dc&path=%2Fx%2Fy"
