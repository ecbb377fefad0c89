"""Object storage for board snapshots.

`BlobStorage` is the narrow capability the archival engines depend on.
`S3BlobStorage` implements it against any S3-compatible endpoint through
aiobotocore and owns a single client for the lifetime of an `async with`
block, so one pipeline reuses one connection pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, Self

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from taskpilot_archival.core.logging import get_logger
from taskpilot_archival.services.archival.errors import BlobNotFoundError, StoreFailureError

if TYPE_CHECKING:
    from types import TracebackType

    from taskpilot_archival.core.config import Settings

logger = get_logger(__name__)
_MISSING_KEY_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_PRESIGN_METHODS = frozenset({"get_object", "put_object"})
DEFAULT_PRESIGN_EXPIRY_SECONDS = 3600


@dataclass(frozen=True)
class BlobFileMetadata:
    """Descriptive properties of one stored blob."""

    name: str
    size: int
    content_type: str | None
    last_modified: datetime | None


class BlobStorage(Protocol):
    """Operations the archival pipelines need from cold storage."""

    async def upload(self, name: str, data: bytes, content_type: str) -> None: ...

    async def download(self, name: str) -> bytes: ...

    async def list(self, prefix: str) -> list[str]: ...

    async def list_with_metadata(self, prefix: str) -> list[BlobFileMetadata]: ...

    async def delete(self, name: str) -> None: ...

    async def exists(self, name: str) -> bool: ...

    async def metadata(self, name: str) -> BlobFileMetadata | None: ...

    async def presigned_url(
        self, name: str, *, expires_in: int = ..., method: str = ...
    ) -> str: ...


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3BlobStorage:
    """S3-compatible blob store backed by aiobotocore."""

    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self._client_ctx: Any = None
        self._client: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> S3BlobStorage:
        return cls(
            bucket=settings.blob_bucket,
            region=settings.blob_region,
            endpoint_url=settings.blob_endpoint_url,
            access_key_id=settings.blob_access_key_id,
            secret_access_key=settings.blob_secret_access_key,
        )

    async def __aenter__(self) -> Self:
        client_kwargs: dict[str, Any] = {"region_name": self.region}
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key_id:
            client_kwargs["aws_access_key_id"] = self.access_key_id
            client_kwargs["aws_secret_access_key"] = self.secret_access_key
        self._client_ctx = get_session().create_client("s3", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(exc_type, exc, tb)
        self._client_ctx = None
        self._client = None

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("S3BlobStorage must be used inside `async with`")
        return self._client

    def _store_failure(self, operation: str, name: str, exc: Exception) -> StoreFailureError:
        logger.error(
            "blob.operation_failed",
            extra={"operation": operation, "bucket": self.bucket, "blob": name, "error": str(exc)},
        )
        return StoreFailureError(f"blob {operation} failed for {name!r}: {exc}")

    async def upload(self, name: str, data: bytes, content_type: str) -> None:
        try:
            await self.client.put_object(
                Bucket=self.bucket,
                Key=name,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._store_failure("upload", name, exc) from exc
        logger.info(
            "blob.uploaded",
            extra={"bucket": self.bucket, "blob": name, "size_bytes": len(data)},
        )

    async def download(self, name: str) -> bytes:
        try:
            response = await self.client.get_object(Bucket=self.bucket, Key=name)
            async with response["Body"] as stream:
                return bytes(await stream.read())
        except ClientError as exc:
            if _error_code(exc) in _MISSING_KEY_CODES:
                raise BlobNotFoundError(f"blob {name!r} does not exist") from exc
            raise self._store_failure("download", name, exc) from exc
        except BotoCoreError as exc:
            raise self._store_failure("download", name, exc) from exc

    async def list(self, prefix: str) -> list[str]:
        names: list[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                names.extend(str(obj["Key"]) for obj in page.get("Contents", []))
        except (ClientError, BotoCoreError) as exc:
            raise self._store_failure("list", prefix, exc) from exc
        return names

    async def delete(self, name: str) -> None:
        # S3 DeleteObject already succeeds for missing keys.
        try:
            await self.client.delete_object(Bucket=self.bucket, Key=name)
        except (ClientError, BotoCoreError) as exc:
            raise self._store_failure("delete", name, exc) from exc
        logger.info("blob.deleted", extra={"bucket": self.bucket, "blob": name})

    async def metadata(self, name: str) -> BlobFileMetadata | None:
        try:
            head = await self.client.head_object(Bucket=self.bucket, Key=name)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_KEY_CODES:
                return None
            raise self._store_failure("head", name, exc) from exc
        except BotoCoreError as exc:
            raise self._store_failure("head", name, exc) from exc
        return BlobFileMetadata(
            name=name,
            size=int(head.get("ContentLength", 0)),
            content_type=head.get("ContentType"),
            last_modified=head.get("LastModified"),
        )

    async def exists(self, name: str) -> bool:
        return await self.metadata(name) is not None

    async def list_with_metadata(self, prefix: str) -> list[BlobFileMetadata]:
        """List blobs under `prefix` with size and modification time.

        ListObjectsV2 does not return content types, so `content_type` is None.
        """
        entries: list[BlobFileMetadata] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                entries.extend(
                    BlobFileMetadata(
                        name=str(obj["Key"]),
                        size=int(obj.get("Size", 0)),
                        content_type=None,
                        last_modified=obj.get("LastModified"),
                    )
                    for obj in page.get("Contents", [])
                )
        except (ClientError, BotoCoreError) as exc:
            raise self._store_failure("list", prefix, exc) from exc
        return entries

    async def presigned_url(
        self,
        name: str,
        *,
        expires_in: int = DEFAULT_PRESIGN_EXPIRY_SECONDS,
        method: str = "get_object",
    ) -> str:
        """Time-limited URL granting read (`get_object`) or write (`put_object`) access."""
        if method not in _PRESIGN_METHODS:
            raise ValueError(f"Unsupported presign method={method!r}")
        if expires_in <= 0:
            raise ValueError("expires_in must be positive")
        try:
            url = await self.client.generate_presigned_url(
                method,
                Params={"Bucket": self.bucket, "Key": name},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._store_failure("presign", name, exc) from exc
        return str(url)
