"""
Supabase storage adapter - Implements BlobStore protocol.

One instance serves one bucket: identity documents and property
documents live in separate buckets.
"""

import logging
from collections.abc import Sequence

import httpx
from storage3.utils import StorageException
from supabase import Client, create_client

from src.domain.exceptions import DependencyFailure

logger = logging.getLogger(__name__)


class SupabaseBlobStore:
    """
    Implements BlobStore protocol via supabase-py storage.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: Client, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """
        Upload bytes to `path` in the bucket.

        Returns:
            Public URL of the stored object

        Raises:
            DependencyFailure: Storage rejected the upload or is unreachable
        """
        storage = self._client.storage.from_(self._bucket)
        try:
            storage.upload(path, content, {"content-type": content_type, "upsert": "false"})
            url = storage.get_public_url(path)
        except (StorageException, httpx.HTTPError) as exc:
            logger.error("Upload to %s/%s failed: %s", self._bucket, path, exc)
            raise DependencyFailure("Blob storage upload failed") from exc
        logger.debug("Uploaded %s/%s", self._bucket, path)
        return url

    def remove(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        try:
            self._client.storage.from_(self._bucket).remove(list(paths))
        except (StorageException, httpx.HTTPError) as exc:
            logger.error("Removing %d object(s) from %s failed: %s", len(paths), self._bucket, exc)
            raise DependencyFailure("Blob storage delete failed") from exc
        logger.info("Removed %d object(s) from %s", len(paths), self._bucket)


def create_supabase_client(url: str, key: str) -> Client:
    return create_client(url, key)
