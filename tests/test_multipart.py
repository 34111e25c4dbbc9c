import pytest

from s3fileserver.api.multipart import MultipartFileReader, rechunk
from s3fileserver.errors import BadRequest, UploadStreamError
from tests.tools import chunked, multipart_body

pytestmark = pytest.mark.anyio

CONTENT_TYPE = "multipart/form-data; boundary=testboundary"


async def collect(chunks) -> list[bytes]:
    return [chunk async for chunk in chunks]


async def test_open_file():
    data = b"line one\r\nline two\r\n" * 20
    body = multipart_body([("file", "notes.txt", "text/markdown; charset=utf-8", data)])
    reader = MultipartFileReader(chunked(body), CONTENT_TYPE)

    form_file = await reader.open_file()
    assert form_file.name == "file"
    assert form_file.filename == "notes.txt"
    assert form_file.content_type == "text/markdown"
    assert b"".join(await collect(form_file.chunks)) == data


async def test_open_file_skips_other_fields():
    body = multipart_body(
        [
            ("description", None, None, b"not the file"),
            ("file", "a.bin", "application/octet-stream", b"\x00\x01\x02"),
            ("file", "b.bin", "application/octet-stream", b"second file is ignored"),
        ]
    )
    reader = MultipartFileReader(chunked(body, size=3), CONTENT_TYPE)
    form_file = await reader.open_file()
    assert form_file.filename == "a.bin"
    assert b"".join(await collect(form_file.chunks)) == b"\x00\x01\x02"


async def test_open_file_default_content_type():
    body = multipart_body([("file", "a", None, b"abc")])
    form_file = await MultipartFileReader(chunked(body), CONTENT_TYPE).open_file()
    assert form_file.content_type == "text/plain"


async def test_open_file_missing_field():
    body = multipart_body([("upload", "a.txt", "text/plain", b"abc")])
    with pytest.raises(BadRequest):
        await MultipartFileReader(chunked(body), CONTENT_TYPE).open_file()


async def test_open_file_undecodable_names():
    body = multipart_body([("file", "NAME", None, b"abc")]).replace(b"NAME", b"a\xff.txt")
    form_file = await MultipartFileReader(chunked(body), CONTENT_TYPE).open_file()
    assert form_file.filename == "a\ufffd.txt"
    assert b"".join(await collect(form_file.chunks)) == b"abc"

    # a field name that is not valid utf-8 is not the file field
    body = multipart_body([("NAME", "a.txt", None, b"abc")]).replace(b"NAME", b"\xff")
    with pytest.raises(BadRequest):
        await MultipartFileReader(chunked(body), CONTENT_TYPE).open_file()


def test_not_multipart():
    with pytest.raises(BadRequest):
        MultipartFileReader(chunked(b"{}"), "application/json")
    with pytest.raises(BadRequest):
        MultipartFileReader(chunked(b""), "multipart/form-data")
    with pytest.raises(BadRequest):
        MultipartFileReader(chunked(b""), "")


async def test_truncated_body():
    body = multipart_body([("file", "a.txt", "text/plain", b"x" * 100)])
    reader = MultipartFileReader(chunked(body[:80]), CONTENT_TYPE)
    form_file = await reader.open_file()
    with pytest.raises(UploadStreamError):
        await collect(form_file.chunks)


async def test_rechunk():
    assert await collect(rechunk(chunked(b"abcdefghij", size=3), 4)) == [b"abcd", b"efgh", b"ij"]
    assert await collect(rechunk(chunked(b"abcdefgh", size=1), 4)) == [b"abcd", b"efgh"]
    assert await collect(rechunk(chunked(b""), 4)) == []
