"""
Stream uploads into the object store as multipart uploads.

An upload session moves through the states

    INITIATING -> UPLOADING -> COMPLETING -> DONE

and ends in ABORTED (via ABORTING) if uploading or completing fails, if the client stream breaks,
or if the request is cancelled. Aborting releases the parts already stored.
Chunks are uploaded one at a time, in the order they arrive, each as one part.
"""

import logging
from enum import Enum
from typing import AsyncIterable, AsyncIterator

import anyio

from s3fileserver.connections import FileServerContext
from s3fileserver.errors import FileServerError, TooManyParts, UploadStreamError
from s3fileserver.models import UploadedPart
from s3fileserver.objectstorage.store import ObjectStore

# The multipart upload protocol does not allow more parts than this
MAX_PARTS = 10_000


class UploadState(str, Enum):
    INITIATING = "initiating"
    UPLOADING = "uploading"
    COMPLETING = "completing"
    DONE = "done"
    ABORTING = "aborting"
    ABORTED = "aborted"


class MultipartUpload:
    """State of one in-flight upload. Lives only as long as the request that created it."""

    def __init__(self, store: ObjectStore, key: str, content_type: str):
        self.store = store
        self.key = key
        self.content_type = content_type
        self.state = UploadState.INITIATING
        self.upload_id: str | None = None
        self.parts: list[UploadedPart] = []

    def _expect(self, *states: UploadState):
        if self.state not in states:
            raise RuntimeError(f"Upload of {self.key} is {self.state.value}, expected {[s.value for s in states]}")

    async def initiate(self) -> None:
        self._expect(UploadState.INITIATING)
        self.upload_id = await self.store.initiate_multipart(self.key, self.content_type)
        self.state = UploadState.UPLOADING

    async def put(self, chunk: bytes) -> UploadedPart:
        self._expect(UploadState.UPLOADING)
        assert self.upload_id is not None
        if len(self.parts) >= MAX_PARTS:
            raise TooManyParts(f"Too many parts for s3://{self.store.name}/{self.key}")
        part = await self.store.put_part(chunk, self.key, len(self.parts) + 1, self.upload_id, self.content_type)
        self.parts.append(part)
        return part

    async def complete(self) -> None:
        self._expect(UploadState.UPLOADING)
        assert self.upload_id is not None
        self.state = UploadState.COMPLETING
        await self.store.complete_multipart(self.key, self.upload_id, self.parts)
        self.state = UploadState.DONE

    async def abort(self) -> None:
        """Release the stored parts. Failing to do so is logged, the caller should report the original error."""
        self._expect(UploadState.UPLOADING, UploadState.COMPLETING)
        assert self.upload_id is not None
        self.state = UploadState.ABORTING
        try:
            await self.store.abort_multipart(self.key, self.upload_id)
        except FileServerError as e:
            logging.error(f"Error aborting upload for s3://{self.store.name}/{self.key}: {e}")
        self.state = UploadState.ABORTED


async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    """Pull the next chunk from the client, or None at the end of the stream"""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None
    except FileServerError:
        raise
    except Exception as e:
        raise UploadStreamError(f"Error reading chunk: {e}") from e


async def upload_stream(context: FileServerContext, key: str, content_type: str, data: AsyncIterable[bytes]) -> None:
    """
    Store the chunks in data as the object key.
    On success, the listing cache is cleared before returning so later listings include the new object.
    """
    chunks = aiter(data)
    # an empty body is stored as one empty part
    chunk = await _next_chunk(chunks) or b""

    upload = MultipartUpload(context.store, key, content_type)
    # the store may create the upload before a cancellation arrives, so wait for its id to be able to abort
    with anyio.CancelScope(shield=True):
        await upload.initiate()
    try:
        while chunk is not None:
            await upload.put(chunk)
            chunk = await _next_chunk(chunks)
        await upload.complete()
    except BaseException as e:
        if not isinstance(e, FileServerError):
            logging.warning(f"Upload of s3://{context.store.name}/{key} interrupted: {e!r}")
        # also abort when the request is being cancelled
        with anyio.CancelScope(shield=True):
            await upload.abort()
        raise

    await context.cache.clear()
    logging.info(f"Uploaded s3://{context.store.name}/{key} in {len(upload.parts)} part(s)")
