"""Normalized summary document sent to the index backend."""

from pydantic import BaseModel, ConfigDict, Field


class SummaryDocument(BaseModel):
    """Aggregate counters of one JUnit report.

    The index backend rejects documents whose shape varies, so every field is
    always present and always a string.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    org: str
    app: str
    version: str
    timestamp: str
    testsuite_name: str = Field(default="", alias="testsuiteName")
    tests: str = ""
    failures: str = ""
    errors: str = ""
    skipped_tests: str = Field(default="", alias="skippedTests")
    time: str = ""

    def to_document(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
