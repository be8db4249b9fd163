"""Best-effort delivery of summary documents to the search index."""

import logging

import httpx

from report_collector.exceptions import DeliveryError
from report_collector.schemas.summary import SummaryDocument

logger = logging.getLogger(__name__)


class IndexSinkClient:
    """Posts summary documents to the index ingest URL.

    One request per document; no retry. Callers treat failures as non-fatal.
    """

    def __init__(self, url: str, client: httpx.AsyncClient) -> None:
        self.url = url
        self.client = client

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, summary: SummaryDocument) -> None:
        if not self.enabled:
            logger.debug("Index sink disabled, skipping delivery")
            return

        try:
            response = await self.client.post(
                self.url,
                json=summary.to_document(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"Index sink unreachable at {self.url}: {e}") from e

        if not response.is_success:
            raise DeliveryError(
                f"HTTP status: {response.status_code}; HTTP Body: {response.text}",
                status=response.status_code,
                body=response.text,
            )

        logger.info(
            f"Sent summary of {summary.org}/{summary.app}/{summary.version} to {self.url}"
        )
