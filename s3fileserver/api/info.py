"""API Endpoints for server information."""

from importlib.metadata import version

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from s3fileserver.api.files import get_context
from s3fileserver.config import validate_settings
from s3fileserver.connections import FileServerContext

app_info = APIRouter(tags=["informational"])


class InfoResponse(BaseModel):
    api_version: str = Field(..., description="The version of the file server.")
    bucket: str = Field(..., description="The bucket served by this instance.")
    caching: bool = Field(..., description="Whether directory listings are cached.")
    warnings: list[str] = Field(..., description="A list of configuration warnings.")


@app_info.get("/info")
def info(context: FileServerContext = Depends(get_context)) -> InfoResponse:
    """Get basic information about this file server."""
    return InfoResponse(
        api_version=version("s3fileserver"),
        bucket=context.store.name,
        caching=context.cache.enabled,
        warnings=[w for w in [validate_settings(context.settings)] if w],
    )
