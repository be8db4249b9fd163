"""Typed views of the shared metadata records.

The records are stored as JSON columns; these models are the only place the
structure is manipulated, and merges always return new instances.
"""

from pydantic import BaseModel, ConfigDict, Field


class ArtifactEntry(BaseModel):
    """One (filename, public URL) pair."""

    model_config = ConfigDict(frozen=True)

    filename: str
    url: str


class ArtifactIndex(BaseModel):
    """Artifact index record for one (org, app) pair."""

    model_config = ConfigDict(from_attributes=True)

    org: str
    app: str
    versions: dict[str, list[ArtifactEntry]] = Field(default_factory=dict)
    revision: int = 0

    def with_entry(self, version: str, filename: str, url: str) -> "ArtifactIndex":
        """Return a copy with ``filename`` under ``version`` pointing at ``url``.

        The filename is the entry's identity: an existing entry keeps its
        position and only its URL changes. Other versions and filenames are
        carried over untouched.
        """
        entry = ArtifactEntry(filename=filename, url=url)
        entries = list(self.versions.get(version, []))
        for i, existing in enumerate(entries):
            if existing.filename == filename:
                entries[i] = entry
                break
        else:
            entries.append(entry)

        versions = dict(self.versions)
        versions[version] = entries
        return self.model_copy(update={"versions": versions})

    def to_column(self) -> dict:
        return {
            version: [entry.model_dump() for entry in entries]
            for version, entries in self.versions.items()
        }


class BuildActivityCreate(BaseModel):
    """Payload used by the build system to register a build."""

    org: str = Field(min_length=1)
    app: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    build_number: str = Field(min_length=1)


class BuildActivity(BuildActivityCreate):
    """Build activity record with its report annotations."""

    model_config = ConfigDict(from_attributes=True)

    annotations: list[ArtifactEntry] = Field(default_factory=list)
    revision: int = 0

    def with_annotation(self, filename: str, url: str) -> "BuildActivity":
        """Return a copy with the line appended; prior lines are never removed."""
        entry = ArtifactEntry(filename=filename, url=url)
        if entry in self.annotations:
            return self
        return self.model_copy(update={"annotations": [*self.annotations, entry]})

    def to_column(self) -> list:
        return [entry.model_dump() for entry in self.annotations]
