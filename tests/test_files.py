"""Tests for loading local reference files."""

import base64

import pytest

from questup.errors import ValidationError
from questup.files import (
    guess_mime_type,
    load_reference_file,
    load_reference_files,
    to_data_uri,
)
from questup.request_builder import to_inline_part


class TestGuessMimeType:
    """Tests for guess_mime_type."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("notes.pdf", "application/pdf"),
            ("photo.JPG", "image/jpeg"),
            ("photo.jpeg", "image/jpeg"),
            ("scan.png", "image/png"),
            (
                "sheet.xlsx",
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            ),
        ],
    )
    def test_supported(self, tmp_path, name, expected):
        """Test the accepted upload types."""
        assert guess_mime_type(tmp_path / name) == expected

    def test_unsupported(self, tmp_path):
        """Test that other types are rejected."""
        with pytest.raises(ValidationError, match="Unsupported"):
            guess_mime_type(tmp_path / "notes.txt")


class TestLoadReferenceFile:
    """Tests for load_reference_file."""

    def test_loads_as_data_uri(self, tmp_path):
        """Test that contents are base64 encoded in a data URI."""
        path = tmp_path / "scan.png"
        path.write_bytes(b"\x89PNG fake image")

        ref = load_reference_file(path)

        assert ref.name == "scan.png"
        assert ref.mime_type == "image/png"
        assert ref.data == to_data_uri(b"\x89PNG fake image", "image/png")
        assert base64.b64decode(to_inline_part(ref).data) == b"\x89PNG fake image"

    def test_missing_file(self, tmp_path):
        """Test that a missing path is rejected."""
        with pytest.raises(ValidationError, match="not found"):
            load_reference_file(tmp_path / "missing.pdf")

    def test_empty_file(self, tmp_path):
        """Test that an empty file is rejected."""
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")

        with pytest.raises(ValidationError, match="empty"):
            load_reference_file(path)

    def test_load_many_keeps_order(self, tmp_path):
        """Test that files are returned in the given order."""
        for name in ("b.pdf", "a.png"):
            (tmp_path / name).write_bytes(b"data")

        refs = load_reference_files([tmp_path / "b.pdf", str(tmp_path / "a.png")])

        assert [r.name for r in refs] == ["b.pdf", "a.png"]
