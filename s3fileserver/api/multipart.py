"""
Read a file field from a multipart/form-data body while it is still arriving.

The body is pushed through python-multipart's incremental parser, so the file content can be forwarded
to the object store without buffering the whole request.
"""

from collections import deque
from typing import AsyncIterable, AsyncIterator

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from s3fileserver.errors import BadRequest, FileServerError, UploadStreamError

FILE_FIELD = "file"
DEFAULT_CONTENT_TYPE = "text/plain"

# parser events
PART_START = "part_start"
PART_DATA = "part_data"
PART_END = "part_end"


class FormFile:
    """A field of the form, positioned at the start of its content"""

    def __init__(self, name: str, filename: str | None, content_type: str, chunks: AsyncIterator[bytes]):
        self.name = name
        self.filename = filename
        self.content_type = content_type
        self.chunks = chunks


class MultipartFileReader:
    def __init__(self, body: AsyncIterable[bytes], content_type: str, field_name: str = FILE_FIELD):
        media_type, params = parse_options_header(content_type)
        if media_type != b"multipart/form-data" or not params.get(b"boundary"):
            raise BadRequest(f"Expected a multipart/form-data body, got {content_type!r}")

        self.field_name = field_name
        self._body = body
        self._pending: deque[tuple] = deque()
        self._header_name = b""
        self._header_value = b""
        self._headers: dict[bytes, bytes] = {}
        self._parser = MultipartParser(
            params[b"boundary"],
            {
                "on_part_begin": self._on_part_begin,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
            },
        )
        self._events = self._parse()

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_name.lower()] = self._header_value
        self._header_name = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        name = options.get(b"name", b"").decode("utf-8", errors="replace")
        filename = options[b"filename"].decode("utf-8", errors="replace") if b"filename" in options else None
        media_type, _ = parse_options_header(self._headers.get(b"content-type", b""))
        content_type = media_type.decode("latin-1") if media_type else DEFAULT_CONTENT_TYPE
        self._pending.append((PART_START, name, filename, content_type))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._pending.append((PART_DATA, bytes(data[start:end])))

    def _on_part_end(self) -> None:
        self._pending.append((PART_END,))

    async def _parse(self) -> AsyncIterator[tuple]:
        try:
            async for chunk in self._body:
                self._parser.write(chunk)
                while self._pending:
                    yield self._pending.popleft()
            self._parser.finalize()
        except MultipartParseError as e:
            raise BadRequest(f"Malformed multipart body: {e}") from e
        while self._pending:
            yield self._pending.popleft()

    async def open_file(self) -> FormFile:
        """
        Skip ahead to the first field with our field name.
        Raises BadRequest if the body has no such field.
        """
        try:
            async for event in self._events:
                if event[0] == PART_START and event[1] == self.field_name:
                    _, name, filename, content_type = event
                    return FormFile(name, filename, content_type, self._field_data())
        except FileServerError:
            raise
        except Exception as e:
            raise UploadStreamError(f"Error reading request body: {e}") from e
        raise BadRequest(f"No '{self.field_name}' field found in request")

    async def _field_data(self) -> AsyncIterator[bytes]:
        async for event in self._events:
            if event[0] == PART_END:
                return
            if event[0] == PART_DATA and event[1]:
                yield event[1]
        raise UploadStreamError(f"Request body ended inside the '{self.field_name}' field")


async def rechunk(chunks: AsyncIterable[bytes], size: int) -> AsyncIterator[bytes]:
    """Regroup chunks into pieces of exactly size bytes, except for the last one"""
    buffer = bytearray()
    async for chunk in chunks:
        buffer += chunk
        while len(buffer) >= size:
            yield bytes(buffer[:size])
            del buffer[:size]
    if buffer:
        yield bytes(buffer)
