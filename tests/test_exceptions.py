"""Tests for the exception hierarchy."""

from strata.exceptions import ConfigurationError, InvalidPathError, StrataError


class TestStrataError:
    def test_message_only(self):
        error = StrataError("scan failed")
        assert str(error) == "scan failed"
        assert error.details == {}

    def test_details_rendered_in_order(self):
        error = StrataError("scan failed", details={"file": "src/a.ts", "scanner": "ts-js"})
        assert str(error) == "scan failed (file=src/a.ts, scanner=ts-js)"

    def test_invalid_path_carries_reason(self):
        error = InvalidPathError("../outside.py", "outside project root /proj")
        assert isinstance(error, ConfigurationError)
        assert error.reason == "outside project root /proj"
        assert str(error) == (
            "Invalid path: ../outside.py (path=../outside.py, reason=outside project root /proj)"
        )
