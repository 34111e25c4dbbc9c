"""API Endpoints to browse, download and upload files."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from fastapi.responses import RedirectResponse

from s3fileserver.api.multipart import MultipartFileReader, rechunk
from s3fileserver.connections import FileServerContext
from s3fileserver.download import resolve_download
from s3fileserver.errors import BadRequest
from s3fileserver.listing import list_view
from s3fileserver.models import ViewResponse
from s3fileserver.upload import upload_stream

app_files = APIRouter(tags=["files"])


def get_context(request: Request) -> FileServerContext:
    return request.app.state.context


@app_files.get(
    "/view/{path:path}",
    response_model=ViewResponse,
    response_model_exclude_none=True,
    responses={404: {"description": "No files or folders under this path"}},
)
async def view(
    path: Annotated[str, Path(description="The folder to list, with or without trailing slash")],
    cursor: Annotated[str | None, Query(description="Cursor from a previous page (next_cursor)")] = None,
    limit: Annotated[int | None, Query(gt=0, description="Maximum number of entries on this page")] = None,
    context: FileServerContext = Depends(get_context),
):
    """
    List the files and folders directly under a path.

    Results are paged: if next_cursor is present, pass it as cursor to get the next page.
    """
    result = await list_view(context, path, cursor, limit)
    return Response(content=result.to_json(), media_type="application/json")


@app_files.get(
    "/download/{path:path}",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    responses={404: {"description": "Object not found"}},
)
async def download(
    path: Annotated[str, Path(description="The key of the object to download")],
    context: FileServerContext = Depends(get_context),
):
    """Redirect to a temporary (1 hour) download link for the object."""
    if not path:
        raise BadRequest("No key given for download")
    url = await resolve_download(context, path)
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


@app_files.put(
    "/upload/{path:path}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"description": "No file field in the request"}},
)
async def upload(
    path: Annotated[str, Path(description="The key to store the file under")],
    request: Request,
    context: FileServerContext = Depends(get_context),
):
    """
    Upload a file, sent as the 'file' field of a multipart/form-data body.

    The file is streamed to the object store while it is received. An existing object with the same key is replaced.
    """
    if not path:
        raise BadRequest("No key given for upload")
    reader = MultipartFileReader(request.stream(), request.headers.get("content-type", ""))
    form_file = await reader.open_file()
    parts = rechunk(form_file.chunks, context.settings.upload_part_size)
    await upload_stream(context, path, form_file.content_type, parts)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
