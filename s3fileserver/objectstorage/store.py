from typing import Protocol, Sequence

from s3fileserver.models import ListingPage, ObjectHead, UploadedPart


class ObjectStore(Protocol):
    """
    The operations the file server needs from an object store.
    Implementations raise UpstreamError for transport or protocol failures.
    """

    name: str

    async def list_page(
        self, prefix: str, delimiter: str, cursor: str | None = None, limit: int | None = None
    ) -> ListingPage: ...

    async def head_object(self, key: str) -> ObjectHead | None:
        """Return the object metadata, or None if the object does not exist"""
        ...

    async def presign_get(self, key: str, ttl_seconds: int) -> str: ...

    async def initiate_multipart(self, key: str, content_type: str) -> str:
        """Start a multipart upload and return its upload id"""
        ...

    async def put_part(
        self, data: bytes, key: str, part_number: int, upload_id: str, content_type: str
    ) -> UploadedPart: ...

    async def complete_multipart(self, key: str, upload_id: str, parts: Sequence[UploadedPart]) -> None: ...

    async def abort_multipart(self, key: str, upload_id: str) -> None: ...
