"""Download client for meal images stored behind a URL."""

from dataclasses import dataclass

import httpx

from meal_insights.services.nutrition import ImageClient


@dataclass
class HttpxImageClient(ImageClient):
    """Image client using httpx."""

    http_client: httpx.AsyncClient
    timeout_seconds: float = 20.0

    @classmethod
    def create(cls, timeout_seconds: float = 20.0) -> "HttpxImageClient":
        """Create an image client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), timeout_seconds=timeout_seconds)

    async def download(self, url: str) -> bytes:
        """Download image bytes."""
        response = await self.http_client.get(
            url, timeout=self.timeout_seconds, follow_redirects=True
        )
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
