import pytest

from s3fileserver.download import DOWNLOAD_URL_TTL_SECONDS, resolve_download
from s3fileserver.errors import NotFound, UpstreamError

pytestmark = pytest.mark.anyio


async def test_resolve_download(context, store):
    url = await resolve_download(context, "docs/a.txt")
    assert url == f"https://s3.example.com/test-bucket/docs/a.txt?X-Amz-Expires={DOWNLOAD_URL_TTL_SECONDS}"
    assert DOWNLOAD_URL_TTL_SECONDS == 3600
    assert store.calls == ["head_object", "presign_get"]


async def test_resolve_download_missing(context, store):
    with pytest.raises(NotFound):
        await resolve_download(context, "docs/missing.txt")
    # no link is made for objects that do not exist
    assert store.calls == ["head_object"]


async def test_resolve_download_store_error(context, store):
    store.fail("head_object")
    with pytest.raises(UpstreamError):
        await resolve_download(context, "docs/a.txt")

    store.fail("presign_get")
    with pytest.raises(UpstreamError):
        await resolve_download(context, "docs/a.txt")
