"""Unit tests for the JUnit summary transcoder."""

from datetime import UTC, datetime

import pytest

from report_collector.exceptions import TranscodeError
from report_collector.services.transcoder import TIMESTAMP_FORMAT, to_summary

SUMMARY_KEYS = {
    "org",
    "app",
    "version",
    "timestamp",
    "testsuiteName",
    "tests",
    "failures",
    "errors",
    "skippedTests",
    "time",
}


class TestToSummary:
    """Tests for to_summary."""

    def test_minimal_suite(self):
        """Counters of a minimal suite are copied verbatim."""
        xml = b'<testsuite name="S" tests="3" failures="1" errors="0" skipped="0" time="1.2"/>'

        before = datetime.now(UTC).replace(microsecond=0)
        summary = to_summary(xml, "acme", "widget", "1.0.0")
        after = datetime.now(UTC)

        assert summary.testsuite_name == "S"
        assert summary.tests == "3"
        assert summary.failures == "1"
        assert summary.errors == "0"
        assert summary.skipped_tests == "0"
        assert summary.time == "1.2"

        stamped = datetime.strptime(summary.timestamp, TIMESTAMP_FORMAT).replace(tzinfo=UTC)
        assert before <= stamped <= after

    def test_document_has_fixed_keys(self):
        """The index document always has the same keys, all strings."""
        document = to_summary(b"<testsuite/>", "acme", "widget", "1.0.0").to_document()

        assert set(document) == SUMMARY_KEYS
        assert all(isinstance(value, str) for value in document.values())
        assert document["org"] == "acme"
        assert document["app"] == "widget"
        assert document["version"] == "1.0.0"

    def test_missing_attributes_are_empty(self):
        """Absent attributes map to empty strings instead of failing."""
        summary = to_summary(b'<testsuite name="partial" tests="2"/>', "o", "a", "v")

        assert summary.testsuite_name == "partial"
        assert summary.tests == "2"
        assert summary.failures == ""
        assert summary.errors == ""
        assert summary.skipped_tests == ""
        assert summary.time == ""

    def test_timestamp_is_processing_time(self):
        """The file's own timestamp attribute is ignored."""
        xml = b'<testsuite name="S" timestamp="2001-01-01T00:00:00"/>'
        now = datetime(2026, 10, 19, 12, 30, 5, tzinfo=UTC)

        summary = to_summary(xml, "o", "a", "v", now=now)

        assert summary.timestamp == "2026-10-19T12:30:05Z"

    def test_testsuites_root_uses_aggregate_attributes(self):
        """A <testsuites> wrapper contributes its own aggregate counters."""
        xml = (
            b'<testsuites name="all" tests="5" failures="2" errors="1" time="3.5">'
            b'<testsuite name="inner" tests="5"/>'
            b"</testsuites>"
        )

        summary = to_summary(xml, "o", "a", "v")

        assert summary.testsuite_name == "all"
        assert summary.tests == "5"
        assert summary.failures == "2"
        assert summary.errors == "1"
        assert summary.time == "3.5"

    def test_unexpected_root_gives_empty_counters(self):
        """Unknown root elements yield an empty but well-formed summary."""
        summary = to_summary(b'<report tests="9"/>', "o", "a", "v")

        assert summary.tests == ""
        assert summary.testsuite_name == ""

    def test_malformed_xml_raises(self):
        """Broken XML is a transcode error."""
        with pytest.raises(TranscodeError):
            to_summary(b"<testsuite name='S'", "o", "a", "v")
