"""JUnit XML to summary document transcoding.

Only the aggregate counters of the top-level suite are extracted. The
document is rebuilt from scratch with a fixed key set instead of echoing the
parsed tree; per-test-case detail is not included.
"""

import logging
import xml.etree.ElementTree as ET
from datetime import UTC, datetime

from report_collector.exceptions import TranscodeError
from report_collector.schemas.summary import SummaryDocument

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# <testsuite> attribute -> summary field
SUITE_ATTRIBUTES = {
    "errors": "errors",
    "failures": "failures",
    "name": "testsuite_name",
    "skipped": "skipped_tests",
    "tests": "tests",
    "time": "time",
}


def _strip_namespace(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_suite_attributes(xml_bytes: bytes) -> dict[str, str]:
    """Parse the report and return the top-level suite's counter attributes.

    A ``<testsuites>`` root contributes its own aggregate attributes. Missing
    attributes map to an empty string.
    """
    try:
        root = ET.fromstring(xml_bytes)
    except ET.ParseError as e:
        raise TranscodeError(f"Malformed XML report: {e}") from e

    tag = _strip_namespace(root.tag)
    if tag not in ("testsuite", "testsuites"):
        logger.warning(f"Unexpected report root element <{tag}>, counters will be empty")
        return {field: "" for field in SUITE_ATTRIBUTES.values()}

    return {field: root.attrib.get(attr, "") for attr, field in SUITE_ATTRIBUTES.items()}


def to_summary(
    xml_bytes: bytes,
    org: str,
    app: str,
    version: str,
    now: datetime | None = None,
) -> SummaryDocument:
    """Build the summary document for one uploaded report."""
    processed_at = (now or datetime.now(UTC)).astimezone(UTC)
    counters = parse_suite_attributes(xml_bytes)

    return SummaryDocument(
        org=org,
        app=app,
        version=version,
        timestamp=processed_at.strftime(TIMESTAMP_FORMAT),
        **counters,
    )
