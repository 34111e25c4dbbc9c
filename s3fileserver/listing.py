"""
Present the flat key space of a bucket as folders and files.

A listing covers one page of the keys directly under a prefix. Pages are cached until they expire
or until any upload completes.
"""

import logging
from urllib.parse import quote, urljoin

from pydantic import ValidationError

from s3fileserver.cache import LISTING_TTL_SECONDS, listing_cache_key
from s3fileserver.connections import FileServerContext
from s3fileserver.errors import NotFound, UpstreamError
from s3fileserver.models import ListingPage, ViewFile, ViewResponse

DELIMITER = "/"
DOWNLOAD_PATH = "api/download/"


def normalize_prefix(prefix: str, delimiter: str = DELIMITER) -> str:
    """Make sure a non-empty prefix ends with the delimiter"""
    if prefix and not prefix.endswith(delimiter):
        return prefix + delimiter
    return prefix


def effective_limit(requested: int | None, server_limit: int | None) -> int | None:
    """The page size to use. A configured server limit always wins over the client's request."""
    return server_limit or requested


def download_url(api_url: str, key: str) -> str:
    if not api_url.endswith("/"):
        api_url += "/"
    return urljoin(api_url, DOWNLOAD_PATH + quote(key))


def build_view(prefix: str, page: ListingPage, api_url: str, delimiter: str = DELIMITER) -> ViewResponse:
    """
    Turn a page of store results into a view of the files and folders directly under prefix.
    Raises NotFound if there is nothing to show, as an empty folder cannot be told apart from a missing one.
    """
    files = [
        ViewFile(
            name=entry.key[len(prefix) :],
            last_modified=entry.last_modified,
            size=entry.size,
            download_url=download_url(api_url, entry.key),
        )
        for entry in page.entries
        if entry.key.startswith(prefix)
    ]
    folders = [
        common_prefix[len(prefix) :].rstrip(delimiter)
        for common_prefix in page.common_prefixes
        if common_prefix.startswith(prefix)
    ]
    if not files and not folders:
        raise NotFound(f"No files or folders under {prefix!r}")

    return ViewResponse(
        path=prefix,
        files=files or None,
        folders=folders or None,
        next_cursor=page.next_cursor,
    )


async def list_view(
    context: FileServerContext, prefix: str, cursor: str | None = None, limit: int | None = None
) -> ViewResponse:
    prefix = normalize_prefix(prefix)
    limit = effective_limit(limit, context.settings.s3_listobjects_limit)
    store = context.store
    key = listing_cache_key(store.name, prefix, cursor, limit)

    if (cached := await context.cache.get(key)) is not None:
        try:
            return ViewResponse.model_validate_json(cached)
        except ValidationError as e:
            logging.warning(f"Ignoring unreadable cache entry {key}: {e}")

    page = await store.list_page(prefix, DELIMITER, cursor, limit)
    if not 200 <= page.status_code < 300:
        raise UpstreamError(f"Error listing s3://{store.name}/{prefix}: Received HTTP status {page.status_code}")

    view = build_view(prefix, page, context.settings.api_url)
    await context.cache.set(key, view.to_json(), ttl=LISTING_TTL_SECONDS)
    return view
