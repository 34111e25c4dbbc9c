import pytest

from s3fileserver.listing import list_view
from tests.tools import check, multipart_body

pytestmark = pytest.mark.anyio


async def test_view(client):
    res = await client.get("/api/view/docs")
    check(res, 200)
    assert res.json() == {
        "path": "docs/",
        "files": [
            {
                "name": "a.txt",
                "last_modified": "2024-01-02T03:04:05Z",
                "size": 4,
                "download_url": "https://files.example.com/api/download/docs/a.txt",
            },
            {
                "name": "b.txt",
                "last_modified": "2024-01-02T03:04:05Z",
                "size": 4,
                "download_url": "https://files.example.com/api/download/docs/b.txt",
            },
        ],
        "folders": ["sub"],
    }


async def test_view_root(client):
    res = await client.get("/api/view/")
    check(res, 200)
    assert res.json()["path"] == ""
    assert res.json()["folders"] == ["docs"]


async def test_view_pagination(client):
    res = await client.get("/api/view/docs/", params={"limit": 2})
    check(res, 200)
    data = res.json()
    assert [f["name"] for f in data["files"]] == ["a.txt", "b.txt"]
    assert "folders" not in data

    res = await client.get("/api/view/docs/", params={"limit": 2, "cursor": data["next_cursor"]})
    check(res, 200)
    assert res.json() == {"path": "docs/", "folders": ["sub"]}


async def test_view_invalid_limit(client):
    check(await client.get("/api/view/docs/", params={"limit": 0}), 422)


async def test_view_cached_response_is_identical(client, store):
    first = await client.get("/api/view/docs/")
    second = await client.get("/api/view/docs")
    assert first.content == second.content
    assert store.calls == ["list_page"]


async def test_view_cursor_does_not_collide_with_prefix(client, store):
    store.add("@a/hidden.txt")
    check(await client.get("/api/view/", params={"cursor": "a/@"}), 200)
    res = await client.get("/api/view/@a/")
    check(res, 200)
    assert res.json()["path"] == "@a/"
    assert [f["name"] for f in res.json()["files"]] == ["hidden.txt"]


async def test_view_not_found(client):
    check(await client.get("/api/view/missing/"), 404, msg="not found")


async def test_view_store_error(client, store):
    store.fail("list_page")
    res = await client.get("/api/view/docs/")
    check(res, 500)
    # the internal error text is not passed on to the client
    assert res.json() == {"message": "Error accessing object storage"}


async def test_download(client):
    res = await client.get("/api/download/docs/a.txt")
    check(res, 302)
    assert res.headers["location"] == "https://s3.example.com/test-bucket/docs/a.txt?X-Amz-Expires=3600"


async def test_download_not_found(client):
    check(await client.get("/api/download/docs/missing.txt"), 404)


async def test_download_without_key(client, store):
    check(await client.get("/api/download/"), 400)
    assert store.calls == []


async def test_download_store_error(client, store):
    store.fail("head_object")
    check(await client.get("/api/download/docs/a.txt"), 500)


async def test_upload(client, context, store):
    await list_view(context, "docs/")

    res = await client.put("/api/upload/docs/new.txt", files={"file": ("new.txt", b"new content", "text/csv")})
    check(res, 204)
    assert store.objects["docs/new.txt"] == b"new content"
    assert store.content_types["docs/new.txt"] == "text/csv"

    res = await client.get("/api/view/docs/")
    assert "new.txt" in [f["name"] for f in res.json()["files"]]


async def test_upload_in_parts(client, context, store):
    context.settings = context.settings.model_copy(update={"upload_part_size": 4})
    res = await client.put("/api/upload/parts.bin", files={"file": ("parts.bin", b"0123456789")})
    check(res, 204)
    assert store.objects["parts.bin"] == b"0123456789"
    assert store.calls.count("put_part") == 3


async def test_upload_missing_file_field(client, store):
    res = await client.put("/api/upload/docs/new.txt", files={"attachment": ("new.txt", b"new content")})
    check(res, 400)
    assert store.calls == []

    body = multipart_body([("description", None, None, b"no file here")])
    res = await client.put(
        "/api/upload/docs/new.txt",
        content=body,
        headers={"content-type": "multipart/form-data; boundary=testboundary"},
    )
    check(res, 400)
    assert store.calls == []


async def test_upload_not_multipart(client, store):
    check(await client.put("/api/upload/docs/new.txt", json={"file": "abc"}), 400)
    assert store.calls == []


async def test_upload_without_key(client, store):
    check(await client.put("/api/upload/", files={"file": ("a.txt", b"abc")}), 400)
    assert store.calls == []


async def test_upload_undecodable_field_name(client, store):
    body = multipart_body([("NAME", "a.txt", "text/plain", b"abc")]).replace(b"NAME", b"\xff")
    headers = {"Content-Type": "multipart/form-data; boundary=testboundary"}
    check(await client.put("/api/upload/a.txt", content=body, headers=headers), 400)
    assert store.calls == []


async def test_upload_store_error(client, store):
    store.fail("put_part")
    res = await client.put("/api/upload/docs/new.txt", files={"file": ("new.txt", b"new content")})
    check(res, 500)
    assert store.calls[-1] == "abort_multipart"
    assert "docs/new.txt" not in store.objects


async def test_info(client):
    res = await client.get("/api/info")
    check(res, 200)
    data = res.json()
    assert data["bucket"] == "test-bucket"
    assert data["caching"] is True
    assert data["warnings"] == []
