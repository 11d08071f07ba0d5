"""
OCRSnap Backend — Multipart Decoder Unit Tests
===============================================

What:  Tests for form_decoder.decode() and extract_boundary().
How:   Hand-built raw bodies, no HTTP layer involved.

What we test:
    ✅ Field + file decoding with exact payload bytes
    ✅ Missing boundary / unsplittable body → MalformedRequestError
    ✅ Preamble, epilogue, nameless and header-less segments are skipped
    ✅ Defaults for filename and content type
    ✅ Boundaries containing regex metacharacters
    ✅ Last-write-wins and disjoint field/file keys
"""

import pytest

from ocrsnap.exceptions import MalformedRequestError
from ocrsnap.services.form_decoder import decode, extract_boundary

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


class TestDecode:
    """Tests for decode()."""

    def test_field_and_file_scenario(self):
        """One text field and one file part decode into their own mappings."""
        body = (
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="language"\r\n'
            b"\r\n"
            b"lav\r\n"
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="image"; filename="scan.png"\r\n'
            b"Content-Type: image/png\r\n"
            b"\r\n"
            + JPEG_BYTES
            + b"\r\n--XYZ--\r\n"
        )

        form = decode(body, "XYZ")

        assert form.fields == {"language": "lav"}
        assert list(form.files) == ["image"]
        image = form.files["image"]
        assert image.filename == "scan.png"
        assert image.content_type == "image/png"
        assert image.data == JPEG_BYTES

    @pytest.mark.parametrize("boundary", [None, ""])
    @pytest.mark.parametrize("body", [
        b"",
        b"--XYZ\r\nContent-Disposition: form-data; name=\"a\"\r\n\r\n1\r\n--XYZ--",
        b"anything at all",
    ])
    def test_missing_boundary_always_fails(self, body, boundary):
        """No boundary → MalformedRequestError regardless of body content."""
        with pytest.raises(MalformedRequestError, match="No boundary"):
            decode(body, boundary)

    def test_body_without_delimiter_fails(self):
        """A body that never mentions the boundary cannot be split."""
        with pytest.raises(MalformedRequestError, match="could not be split"):
            decode(b"just some bytes", "XYZ")

    def test_part_count_matches_meaningful_parts(self, multipart_body):
        """Combined field + file count equals the number of named parts."""
        body = multipart_body(
            "b0undary",
            fields={"mode": "advanced", "language": "rus", "note": "hi"},
            files={"image": ("a.png", "image/png", b"\x89PNG"), "extra": ("b.bin", None, b"\x00")},
        )

        form = decode(body, "b0undary")

        assert len(form) == 5
        assert len(form.fields) == 3
        assert len(form.files) == 2

    def test_preamble_and_epilogue_ignored(self):
        """Text before the first and after the last delimiter is not a part."""
        body = (
            b"This is the preamble.\r\n"
            b"--B\r\n"
            b'Content-Disposition: form-data; name="mode"\r\n\r\n'
            b"fast\r\n"
            b"--B--\r\n"
            b"This is the epilogue.\r\n"
        )

        form = decode(body, "B")

        assert form.fields == {"mode": "fast"}
        assert form.files == {}

    def test_segment_without_disposition_ignored(self):
        body = (
            b"--B\r\nContent-Type: text/plain\r\n\r\norphan\r\n"
            b'--B\r\nContent-Disposition: form-data; name="kept"\r\n\r\nyes\r\n'
            b"--B--\r\n"
        )

        form = decode(body, "B")

        assert form.fields == {"kept": "yes"}

    def test_segment_without_name_ignored(self):
        body = (
            b"--B\r\nContent-Disposition: form-data\r\n\r\nnameless\r\n"
            b'--B\r\nContent-Disposition: form-data; name=""\r\n\r\nempty name\r\n'
            b"--B--\r\n"
        )

        form = decode(body, "B")

        assert len(form) == 0

    def test_empty_field_value(self, multipart_body):
        form = decode(multipart_body("B", fields={"language": ""}), "B")
        assert form.fields == {"language": ""}

    def test_part_without_header_separator_has_empty_value(self):
        body = b'--B\r\nContent-Disposition: form-data; name="mode"\r\n--B--\r\n'

        form = decode(body, "B")

        assert form.fields == {"mode": ""}

    def test_field_value_is_trimmed(self):
        body = b'--B\r\nContent-Disposition: form-data; name="mode"\r\n\r\n  handwriting \t\r\n\r\n--B--'
        assert decode(body, "B").fields["mode"] == "handwriting"

    def test_field_value_utf8(self, multipart_body):
        form = decode(multipart_body("B", fields={"caption": "brāļi"}), "B")
        assert form.fields["caption"] == "brāļi"

    def test_file_bytes_keep_inner_whitespace(self, multipart_body):
        """Only the CRLF owned by the next delimiter is removed from file data."""
        payload = b"\r\n\x00binary\r\n\x01  \n"
        form = decode(multipart_body("B", files={"image": ("x.bin", "application/x-test", payload)}), "B")
        assert form.files["image"].data == payload

    def test_file_defaults(self):
        """Empty filename → 'unknown'; missing Content-Type → octet-stream."""
        body = (
            b'--B\r\nContent-Disposition: form-data; name="image"; filename=""\r\n\r\n'
            b"DATA\r\n--B--\r\n"
        )

        attachment = decode(body, "B").files["image"]

        assert attachment.filename == "unknown"
        assert attachment.content_type == "application/octet-stream"
        assert attachment.data == b"DATA"
        assert attachment.size == 4

    def test_filename_before_name(self):
        """`filename=` must not be mistaken for the part name."""
        body = (
            b'--B\r\nContent-Disposition: form-data; filename="scan.png"; name="image"\r\n'
            b"Content-Type: image/png\r\n\r\nPNG\r\n--B--\r\n"
        )

        form = decode(body, "B")

        assert list(form.files) == ["image"]
        assert form.files["image"].filename == "scan.png"

    @pytest.mark.parametrize("boundary", [
        "a.b+c*(d)?",
        "----WebKitFormBoundary7MA4YWxkTrZu0gW",
        "[x]|^$\\",
    ])
    def test_boundary_is_literal(self, boundary, multipart_body):
        """Regex metacharacters in the boundary are matched literally."""
        body = multipart_body(boundary, fields={"mode": "advanced"}, files={"image": ("s.png", "image/png", b"ab")})

        form = decode(body, boundary)

        assert form.fields == {"mode": "advanced"}
        assert form.files["image"].data == b"ab"

    def test_duplicate_field_last_write_wins(self):
        body = (
            b'--B\r\nContent-Disposition: form-data; name="mode"\r\n\r\nfast\r\n'
            b'--B\r\nContent-Disposition: form-data; name="mode"\r\n\r\nadvanced\r\n'
            b"--B--\r\n"
        )
        assert decode(body, "B").fields == {"mode": "advanced"}

    def test_duplicate_name_reclassified_stays_disjoint(self):
        """A later file part replaces an earlier field of the same name."""
        body = (
            b'--B\r\nContent-Disposition: form-data; name="image"\r\n\r\nnot a file\r\n'
            b'--B\r\nContent-Disposition: form-data; name="image"; filename="a.png"\r\n'
            b"Content-Type: image/png\r\n\r\nPNG\r\n"
            b"--B--\r\n"
        )

        form = decode(body, "B")

        assert "image" not in form.fields
        assert form.files["image"].data == b"PNG"
        assert set(form.fields).isdisjoint(form.files)

    def test_header_names_case_insensitive(self):
        body = (
            b'--B\r\ncontent-disposition: form-data; name="image"; filename="a.jpg"\r\n'
            b"content-type: image/jpeg\r\n\r\nJPG\r\n--B--\r\n"
        )

        attachment = decode(body, "B").files["image"]

        assert attachment.content_type == "image/jpeg"

    def test_body_with_only_terminator_is_empty_form(self):
        form = decode(b"--B--\r\n", "B")
        assert form.fields == {}
        assert form.files == {}


class TestExtractBoundary:
    """Tests for extract_boundary()."""

    def test_plain_boundary(self):
        assert extract_boundary("multipart/form-data; boundary=XYZ") == "XYZ"

    def test_quoted_boundary(self):
        assert extract_boundary('multipart/form-data; boundary="a b;c"') == "a b;c"

    def test_boundary_followed_by_parameter(self):
        assert extract_boundary("multipart/form-data; boundary=XYZ; charset=utf-8") == "XYZ"

    def test_case_insensitive(self):
        assert extract_boundary("Multipart/Form-Data; Boundary=XYZ") == "XYZ"

    @pytest.mark.parametrize("header", [
        None,
        "",
        "multipart/form-data",
        "multipart/form-data; charset=utf-8",
        "application/json; boundary=XYZ",
    ])
    def test_missing_boundary(self, header):
        assert extract_boundary(header) is None
