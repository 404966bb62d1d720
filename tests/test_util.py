"""
Tests for utility modules.
"""

import pytest

from msp_toolkit.exceptions import CsvInputError, InputFileNotFoundError
from msp_toolkit.util.csvio import normalize_header, read_rows, write_rows
from msp_toolkit.util.files import ensure_dir, write_text
from msp_toolkit.util.redact import redact_sensitive, truncate


class TestFileUtils:
    """Tests for file utilities."""

    def test_ensure_dir_creates_nested(self, tmp_path):
        target = tmp_path / "a" / "b" / "c"

        result = ensure_dir(target)

        assert result == target
        assert target.is_dir()

    def test_ensure_dir_existing(self, tmp_path):
        assert ensure_dir(tmp_path) == tmp_path

    def test_write_text_creates_parents(self, tmp_path):
        target = tmp_path / "reports" / "audit.md"

        write_text(target, "# Audit\n")

        assert target.read_text(encoding="utf-8") == "# Audit\n"


class TestNormalizeHeader:
    """Tests for CSV header normalization."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("DeviceUID", "device_uid"),
            (" Serial Number ", "serial_number"),
            ("serial_number", "serial_number"),
            ("SerialNumber", "serial_number"),
            ("Organization ID", "organization_id"),
            ("organization-id", "organization_id"),
            ("Model", "model"),
        ],
    )
    def test_normalize(self, header, expected):
        assert normalize_header(header) == expected


class TestCsvIO:
    """Tests for CSV reading and writing."""

    def test_round_trip(self, tmp_path):
        """Test that written rows read back unchanged."""
        path = tmp_path / "out" / "results.csv"
        rows = [
            {"key": "PC-1", "status": "created", "resource_id": "10", "detail": ""},
            {"key": "PC-2, Lobby", "status": "failed", "resource_id": "", "detail": 'quote " inside'},
        ]

        count = write_rows(path, rows)

        assert count == 2
        assert read_rows(path) == rows

    def test_none_written_as_empty(self, tmp_path):
        path = tmp_path / "rows.csv"
        write_rows(path, [{"a": None, "b": 1}])

        assert read_rows(path) == [{"a": "", "b": "1"}]

    def test_fieldnames_control_order(self, tmp_path):
        path = tmp_path / "rows.csv"
        write_rows(path, [{"b": "2", "a": "1", "extra": "x"}], fieldnames=["a", "b"])

        assert path.read_text(encoding="utf-8").splitlines() == ["a,b", "1,2"]

    def test_read_normalizes_headers_and_strips(self, tmp_path):
        """Test Excel exports with a BOM and mixed headers are handled."""
        path = tmp_path / "devices.csv"
        path.write_text("\ufeffDeviceUID, Serial Number ,Manufacturer\nabc , S1,Dell\n,,\nxyz,S2\n", encoding="utf-8")

        rows = read_rows(path, required=("manufacturer",), require_any=("device_uid", "configuration_id"))

        assert rows == [
            {"device_uid": "abc", "serial_number": "S1", "manufacturer": "Dell"},
            {"device_uid": "xyz", "serial_number": "S2", "manufacturer": ""},
        ]

    def test_missing_required_column(self, tmp_path):
        path = tmp_path / "devices.csv"
        path.write_text("hostname,model\nPC-1,T14\n", encoding="utf-8")

        with pytest.raises(CsvInputError) as exc_info:
            read_rows(path, required=("manufacturer",), require_any=("device_uid", "serial_number"))

        assert "manufacturer" in exc_info.value.message
        assert "device_uid or serial_number" in exc_info.value.message

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputFileNotFoundError):
            read_rows(tmp_path / "nope.csv")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        assert read_rows(path) == []


class TestRedact:
    """Tests for secret redaction."""

    def test_itglue_api_key(self):
        text = "x-api-key header was ITG.0123456789abcdef.ghijklmnop"
        assert "0123456789abcdef" not in redact_sensitive(text)

    def test_json_password(self):
        assert redact_sensitive('{"password": "hunter2"}') == '{"password": "REDACTED"}'

    def test_query_string_token(self):
        assert redact_sensitive("https://x.test/?token=abc123&page=2") == "https://x.test/?token=REDACTED&page=2"

    def test_bearer(self):
        assert redact_sensitive("Authorization: Bearer eyJhbGciOi") == "Authorization: Bearer REDACTED"

    def test_plain_text_unchanged(self):
        assert redact_sensitive("nothing to see here") == "nothing to see here"

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("x" * 15, 10) == "x" * 10 + "... [5 more characters]"
