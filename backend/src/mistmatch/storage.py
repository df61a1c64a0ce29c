"""Verification photo storage client.

Lists the objects a user uploaded to the verification bucket and resolves
them to public URLs, using the storage REST API of the backing project.
"""

from urllib.parse import quote

import httpx

from .config import get_settings
from .logging import get_context_logger

logger = get_context_logger(__name__)


class PhotoResolver:
    """Resolves a user's verification photos to publicly fetchable URLs."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        bucket: str | None = None,
        limit: int | None = None,
        extensions: list[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self._base_url = (base_url or settings.storage_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.storage_api_key
        self._bucket = bucket or settings.verification_bucket
        self._limit = limit or settings.photo_list_limit
        self._extensions = tuple(ext.lower() for ext in (extensions or settings.photo_extensions_list))
        self._timeout = settings.storage_timeout_seconds
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {}
            if self._api_key:
                headers = {
                    "apikey": self._api_key,
                    "Authorization": f"Bearer {self._api_key}",
                }
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=headers,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def is_photo(self, name: str) -> bool:
        """Check whether an object name has an allowed image extension."""
        return name.lower().endswith(self._extensions)

    def public_url(self, owner_id: str, name: str) -> str:
        """Public URL for an object in the owner's namespace."""
        path = quote(f"{owner_id}/{name}", safe="/")
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{path}"

    async def list_objects(self, owner_id: str) -> list[str]:
        """List object names under the owner's prefix, in store order.

        Raises:
            httpx.HTTPError: If the listing request fails
        """
        response = await self.http_client.post(
            f"{self._base_url}/storage/v1/object/list/{self._bucket}",
            json={"prefix": owner_id, "limit": self._limit, "offset": 0},
        )
        response.raise_for_status()
        return [item["name"] for item in response.json() if item.get("name")]

    async def resolve(self, owner_id: str) -> list[str]:
        """Public URLs of the owner's verification photos.

        Args:
            owner_id: The user whose namespace is listed

        Returns:
            URLs in listing order, restricted to image objects
        """
        names = await self.list_objects(owner_id)
        return [self.public_url(owner_id, name) for name in names if self.is_photo(name)]


# Singleton instance
_resolver: PhotoResolver | None = None


def get_photo_resolver() -> PhotoResolver:
    """Get the photo resolver singleton."""
    global _resolver
    if _resolver is None:
        _resolver = PhotoResolver()
    return _resolver
