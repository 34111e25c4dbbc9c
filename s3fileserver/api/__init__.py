"""S3 FileServer API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from s3fileserver.api.files import app_files
from s3fileserver.api.info import app_info
from s3fileserver.config import Settings, get_settings
from s3fileserver.connections import fileserver_connections
from s3fileserver.errors import FileServerError

API_PREFIX = "/api"


def create_app(settings: Settings | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with fileserver_connections(settings or get_settings()) as context:
            app.state.context = context
            yield

    app = FastAPI(
        title="S3 FileServer",
        description=__doc__ if __doc__ else "",
        openapi_tags=[
            dict(name="files", description="Endpoints to list, download and upload files"),
            dict(name="informational", description="Information about this server"),
        ],
        lifespan=lifespan,
    )
    app.include_router(app_files, prefix=API_PREFIX)
    app.include_router(app_info, prefix=API_PREFIX)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FileServerError)
    async def fileserver_exception_handler(request: Request, exc: FileServerError):
        if exc.status_code >= 500:
            logging.error(f"{request.method} {request.url.path}: {exc.detail}")
        else:
            logging.info(f"{request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request, exc) -> JSONResponse:
        return JSONResponse(
            status_code=422, content={"message": "There was an issue with the data you sent.", "fields_invalid": exc.errors()}
        )

    return app
