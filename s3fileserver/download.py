from s3fileserver.connections import FileServerContext
from s3fileserver.errors import NotFound

DOWNLOAD_URL_TTL_SECONDS = 60 * 60  # 1 hour


async def resolve_download(context: FileServerContext, key: str) -> str:
    """
    Return a temporary download link for the object.
    The object must exist, so clients get a 404 here rather than an error from the store later.
    """
    if await context.store.head_object(key) is None:
        raise NotFound(f"No object at s3://{context.store.name}/{key}")
    return await context.store.presign_get(key, DOWNLOAD_URL_TTL_SECONDS)
