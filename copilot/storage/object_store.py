"""S3-compatible object storage listing (Cloudflare R2 / Supabase S3).

boto3 is blocking, so every call runs in a worker thread via
``asyncio.to_thread``.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from copilot.core.config import get_settings
from copilot.core.exceptions import ConfigurationError, StorageListError
from copilot.storage.paths import normalize_prefix

logger = logging.getLogger(__name__)


class StorageEntry(BaseModel):
    """One immediate child of a listed prefix."""

    name: str
    is_folder: bool


class ObjectStore(Protocol):
    """Lists the immediate children of a prefix."""

    async def list(self, prefix: str) -> list[StorageEntry]:
        ...


class S3ObjectStore:
    """Object store backed by boto3 ``list_objects_v2`` with ``Delimiter="/"``."""

    def __init__(
        self,
        bucket_name: str,
        client: Any = None,
        page_size: int = 1000,
    ):
        self.bucket_name = bucket_name
        self.page_size = page_size
        self._client = client

    @classmethod
    def from_settings(cls) -> "S3ObjectStore":
        """Build a store from settings.

        Raises:
            ConfigurationError: If storage credentials are not configured.
        """
        settings = get_settings()
        if not settings.storage_enabled:
            raise ConfigurationError(
                "Object storage not configured (missing endpoint or credentials)"
            )

        boto_config = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=settings.storage_timeout_seconds,
            read_timeout=settings.storage_timeout_seconds,
        )
        client = boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            aws_access_key_id=settings.storage_access_key,
            aws_secret_access_key=settings.storage_secret_key,
            region_name="auto",
            config=boto_config,
        )
        logger.info(f"Object storage initialized: bucket={settings.storage_bucket_name}")
        return cls(
            bucket_name=settings.storage_bucket_name,
            client=client,
            page_size=settings.storage_page_size,
        )

    def _list_sync(self, prefix: str) -> list[StorageEntry]:
        root = normalize_prefix(prefix)
        key_prefix = f"{root}/" if root else ""

        entries: list[StorageEntry] = []
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket_name,
            "Prefix": key_prefix,
            "Delimiter": "/",
            "MaxKeys": self.page_size,
        }

        while True:
            try:
                response = self._client.list_objects_v2(**kwargs)
            except ClientError as e:
                message = e.response.get("Error", {}).get("Message", str(e))
                raise StorageListError(
                    f"Storage list failed for '{root}': {message}",
                    details={"prefix": root},
                ) from e
            except BotoCoreError as e:
                raise StorageListError(
                    f"Storage list failed for '{root}': {e}",
                    details={"prefix": root},
                ) from e

            for common in response.get("CommonPrefixes", []):
                name = common.get("Prefix", "")[len(key_prefix):].strip("/")
                if name:
                    entries.append(StorageEntry(name=name, is_folder=True))

            for obj in response.get("Contents", []):
                name = obj.get("Key", "")[len(key_prefix):]
                # The prefix itself shows up as a zero-byte marker in some buckets
                if name:
                    entries.append(StorageEntry(name=name, is_folder=name.endswith("/")))

            if not response.get("IsTruncated"):
                break
            kwargs["ContinuationToken"] = response.get("NextContinuationToken")

        return entries

    async def list(self, prefix: str) -> list[StorageEntry]:
        """List the immediate children of ``prefix``.

        Raises:
            StorageListError: If the storage service rejects the request.
        """
        return await asyncio.to_thread(self._list_sync, prefix)


@lru_cache
def get_object_store() -> Optional[S3ObjectStore]:
    """Shared object store, or None when storage is not configured."""
    try:
        return S3ObjectStore.from_settings()
    except ConfigurationError as e:
        logger.warning(e.message)
        return None
