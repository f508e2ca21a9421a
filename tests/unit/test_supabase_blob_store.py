"""
Unit tests for SupabaseBlobStore adapter.

The supabase client is mocked down to the bucket API.
"""

from unittest.mock import MagicMock

import httpx
import pytest
from storage3.utils import StorageException

from src.adapters.storage.supabase_store import SupabaseBlobStore
from src.domain.exceptions import DependencyFailure


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def bucket(client: MagicMock) -> MagicMock:
    return client.storage.from_.return_value


class TestUpload:
    """Tests for upload()."""

    def test_uploads_and_returns_public_url(self, client: MagicMock, bucket: MagicMock) -> None:
        bucket.get_public_url.return_value = "https://cdn.example.com/documents/selfie/a.jpg"
        store = SupabaseBlobStore(client, "identity-documents")

        url = store.upload("documents/selfie/a.jpg", b"jpeg", "image/jpeg")

        assert url == "https://cdn.example.com/documents/selfie/a.jpg"
        client.storage.from_.assert_called_with("identity-documents")
        bucket.upload.assert_called_once_with(
            "documents/selfie/a.jpg", b"jpeg", {"content-type": "image/jpeg", "upsert": "false"}
        )

    @pytest.mark.parametrize(
        "error", [StorageException({"message": "Duplicate"}), httpx.ConnectError("refused")]
    )
    def test_failure_becomes_dependency_failure(self, client: MagicMock, bucket: MagicMock, error) -> None:
        bucket.upload.side_effect = error

        with pytest.raises(DependencyFailure, match="upload failed"):
            SupabaseBlobStore(client, "documents").upload("a.jpg", b"x", "image/jpeg")


class TestRemove:
    """Tests for remove()."""

    def test_removes_paths(self, client: MagicMock, bucket: MagicMock) -> None:
        SupabaseBlobStore(client, "documents").remove(("a.jpg", "b.jpg"))

        bucket.remove.assert_called_once_with(["a.jpg", "b.jpg"])

    def test_empty_list_is_a_no_op(self, client: MagicMock, bucket: MagicMock) -> None:
        SupabaseBlobStore(client, "documents").remove([])

        bucket.remove.assert_not_called()

    def test_failure_becomes_dependency_failure(self, client: MagicMock, bucket: MagicMock) -> None:
        bucket.remove.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(DependencyFailure, match="delete failed"):
            SupabaseBlobStore(client, "documents").remove(["a.jpg"])
