import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncGenerator

from aiobotocore.config import AioConfig
from aiobotocore.session import get_session

from s3fileserver.cache import Cache, create_cache
from s3fileserver.config import Settings
from s3fileserver.objectstorage.s3bucket import S3Bucket
from s3fileserver.objectstorage.store import ObjectStore


class FileServerContext:
    """
    Everything a request handler needs: the settings, the object store and the cache.
    Created once at startup and shared by all requests.
    """

    settings: Settings
    store: ObjectStore
    cache: Cache

    def __init__(self, settings: Settings, store: ObjectStore, cache: Cache, exit_stack: AsyncExitStack | None = None):
        self.settings = settings
        self.store = store
        self.cache = cache
        self._exit_stack = exit_stack

    async def close(self) -> None:
        await self.cache.close()
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None


async def start_context(settings: Settings) -> FileServerContext:
    """Start the s3 client and cache connection described by the settings"""
    s3_config = {"addressing_style": "path"} if settings.s3_use_path_style else {}
    session = get_session()
    client = session.create_client(
        service_name="s3",
        endpoint_url=settings.s3_endpoint,
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_access_key_id,
        aws_secret_access_key=settings.s3_secret_access_key,
        aws_session_token=settings.s3_session_token,
        config=AioConfig(signature_version="s3v4", s3=s3_config),
    )

    # client is an async context manager, so we use an AsyncExitStack to manage its lifetime
    exit_stack = AsyncExitStack()
    s3_client = await exit_stack.enter_async_context(client)
    store = S3Bucket(s3_client, settings.s3_bucket_name, use_listobjects_v2=settings.s3_use_listobjects_v2)
    logging.info(f"Connected to {settings.s3_bucket_name} at {settings.s3_endpoint or settings.s3_region}")

    cache = create_cache(settings.redis_url, settings.cache_namespace)
    if cache.enabled:
        logging.info("Caching directory listings in redis")

    return FileServerContext(settings, store, cache, exit_stack)


@asynccontextmanager
async def fileserver_connections(settings: Settings) -> AsyncGenerator[FileServerContext, None]:
    """
    The main context manager to start and stop the connections used by the file server.
        - For running the server: in the FastAPI lifespan
        - For CLI commands: within the CLI command
    """
    context = await start_context(settings)
    try:
        yield context
    finally:
        await context.close()
