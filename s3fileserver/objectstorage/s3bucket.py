"""
Interact with S3-compatible object storage (e.g., AWS S3, MinIO, SeaweedFS, Cloudflare R2).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from botocore.exceptions import BotoCoreError, ClientError
from types_aiobotocore_s3.client import S3Client
from types_aiobotocore_s3.type_defs import (
    CompletedPartTypeDef,
    ListObjectsRequestTypeDef,
    ListObjectsV2RequestTypeDef,
)

from s3fileserver.errors import UpstreamError
from s3fileserver.models import ListingPage, ObjectEntry, ObjectHead, UploadedPart

NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


class S3Bucket:
    """A single bucket, accessed through an (already started) aiobotocore client"""

    def __init__(self, client: S3Client, name: str, use_listobjects_v2: bool = True):
        self.client = client
        self.name = name
        self.use_listobjects_v2 = use_listobjects_v2

    def url(self, key: str = "") -> str:
        return f"s3://{self.name}/{key}"

    @asynccontextmanager
    async def _upstream(self, action: str, key: str) -> AsyncIterator[None]:
        try:
            yield
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError(f"Error {action} {self.url(key)}: {e}") from e

    async def list_page(
        self, prefix: str, delimiter: str = "/", cursor: str | None = None, limit: int | None = None
    ) -> ListingPage:
        logging.debug(f"Listing {self.url(prefix)} with cursor {cursor!r} and limit {limit!r}")
        async with self._upstream("listing", prefix):
            if self.use_listobjects_v2:
                return await self._list_page_v2(prefix, delimiter, cursor, limit)
            return await self._list_page_v1(prefix, delimiter, cursor, limit)

    async def _list_page_v2(self, prefix: str, delimiter: str, cursor: str | None, limit: int | None) -> ListingPage:
        params: ListObjectsV2RequestTypeDef = {"Bucket": self.name, "Prefix": prefix, "Delimiter": delimiter}
        if cursor:
            params["ContinuationToken"] = cursor
        if limit:
            params["MaxKeys"] = limit

        res = await self.client.list_objects_v2(**params)
        page = _listing_page(res)
        page.next_cursor = res.get("NextContinuationToken") if res.get("IsTruncated") else None
        return page

    async def _list_page_v1(self, prefix: str, delimiter: str, cursor: str | None, limit: int | None) -> ListingPage:
        params: ListObjectsRequestTypeDef = {"Bucket": self.name, "Prefix": prefix, "Delimiter": delimiter}
        if cursor:
            params["Marker"] = cursor
        if limit:
            params["MaxKeys"] = limit

        res = await self.client.list_objects(**params)
        page = _listing_page(res)
        if res.get("IsTruncated"):
            # NextMarker is only returned when a delimiter is given, some stores omit it regardless
            page.next_cursor = res.get("NextMarker") or max(
                [e.key for e in page.entries] + page.common_prefixes, default=None
            )
        return page

    async def head_object(self, key: str) -> ObjectHead | None:
        try:
            res = await self.client.head_object(Bucket=self.name, Key=key)
        except ClientError as e:
            error = e.response.get("Error", {})
            if error.get("Code") in NOT_FOUND_CODES:
                return None
            raise UpstreamError(f"Error accessing {self.url(key)}: {e}") from e
        except BotoCoreError as e:
            raise UpstreamError(f"Error accessing {self.url(key)}: {e}") from e

        return ObjectHead(
            key=key,
            size=res.get("ContentLength"),
            content_type=res.get("ContentType"),
            last_modified=res.get("LastModified"),
            etag=res["ETag"].strip('"') if res.get("ETag") else None,
        )

    async def presign_get(self, key: str, ttl_seconds: int) -> str:
        async with self._upstream("presigning", key):
            return await self.client.generate_presigned_url(
                "get_object", Params={"Bucket": self.name, "Key": key}, ExpiresIn=ttl_seconds
            )

    async def initiate_multipart(self, key: str, content_type: str) -> str:
        async with self._upstream("initiating multipart upload for", key):
            res = await self.client.create_multipart_upload(Bucket=self.name, Key=key, ContentType=content_type)
        return res["UploadId"]

    async def put_part(
        self, data: bytes, key: str, part_number: int, upload_id: str, content_type: str
    ) -> UploadedPart:
        # content_type is fixed when the upload is initiated, parts only carry bytes
        async with self._upstream(f"uploading part {part_number} of", key):
            res = await self.client.upload_part(
                Bucket=self.name,
                Key=key,
                PartNumber=part_number,
                UploadId=upload_id,
                Body=data,
                ContentLength=len(data),
            )
        return UploadedPart(part_number=part_number, etag=res["ETag"])

    async def complete_multipart(self, key: str, upload_id: str, parts: Sequence[UploadedPart]) -> None:
        completed: list[CompletedPartTypeDef] = [{"PartNumber": p.part_number, "ETag": p.etag} for p in parts]
        async with self._upstream("completing multipart upload for", key):
            await self.client.complete_multipart_upload(
                Bucket=self.name, Key=key, UploadId=upload_id, MultipartUpload={"Parts": completed}
            )

    async def abort_multipart(self, key: str, upload_id: str) -> None:
        async with self._upstream("aborting multipart upload for", key):
            await self.client.abort_multipart_upload(Bucket=self.name, Key=key, UploadId=upload_id)


def _listing_page(res) -> ListingPage:
    entries = [
        ObjectEntry(key=content["Key"], size=content.get("Size", 0), last_modified=content["LastModified"])
        for content in res.get("Contents", [])
        if "Key" in content
    ]
    common_prefixes = [cp["Prefix"] for cp in res.get("CommonPrefixes", []) if "Prefix" in cp]
    return ListingPage(
        entries=entries,
        common_prefixes=common_prefixes,
        status_code=res.get("ResponseMetadata", {}).get("HTTPStatusCode", 200),
    )
