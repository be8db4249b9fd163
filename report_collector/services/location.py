"""Public URL resolution for stored artifacts."""

from urllib.parse import quote

from report_collector.services.artifact_store import ArtifactKey


class LocationResolver:
    """Builds externally reachable URLs from the report server's base URL."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def resolve(self, key: ArtifactKey) -> str:
        path = "/".join(quote(part, safe="") for part in key.parts)
        return f"{self.base_url}/{path}"
