"""
S3 FileServer Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the ENV_FILE environment variable
"""

import functools
import os
from enum import Enum
from pathlib import Path
from typing import Annotated
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from s3fileserver.errors import ConfigurationError

DEFAULT_API_URL = "http://localhost:3001"

# S3 refuses multipart parts smaller than this, except for the last part
MIN_PART_SIZE = 5 * 1024 * 1024


class Environment(str, Enum):
    development = "development"
    production = "production"


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(description="Location of a .env file (if used) relative to working directory"),
    ] = Path(".env")

    environment: Annotated[
        Environment,
        Field(description="Deployment environment. Production logs one JSON object per line"),
    ] = Environment.development

    host: Annotated[str, Field(description="Address to bind the HTTP server to")] = "0.0.0.0"
    port: Annotated[int, Field(description="Port to bind the HTTP server to")] = 3001

    api_url: Annotated[
        str,
        Field(description="Public base URL of this API, used to build download links in listings"),
    ] = DEFAULT_API_URL

    s3_bucket_name: Annotated[str, Field(description="Name of the bucket to serve")]
    s3_endpoint: Annotated[
        str | None,
        Field(description="Endpoint of the S3-compatible store (e.g. http://localhost:9000). Default: AWS"),
    ] = None
    s3_region: Annotated[str | None, Field(description="Region of the bucket")] = None
    s3_access_key_id: Annotated[str | None, Field()] = None
    s3_secret_access_key: Annotated[str | None, Field()] = None
    s3_session_token: Annotated[
        str | None,
        Field(
            description="Session token for temporary credentials",
            validation_alias=AliasChoices("s3_session_token", "s3_security_token"),
        ),
    ] = None
    s3_use_path_style: Annotated[
        bool,
        Field(description="Use path-style addressing (needed for most self-hosted stores)"),
    ] = False
    s3_use_listobjects_v2: Annotated[
        bool,
        Field(description="Use ListObjectsV2. Disable for stores that only implement the original ListObjects"),
    ] = True
    s3_listobjects_limit: Annotated[
        int | None,
        Field(description="Maximum number of entries per listing page. Overrides the limit requested by clients"),
    ] = None

    redis_url: Annotated[
        str | None,
        Field(description="Redis URL for caching directory listings. Caching is disabled if not set"),
    ] = None
    cache_namespace: Annotated[
        str,
        Field(description="Prefix for all cache keys written by this server"),
    ] = "s3fileserver"

    upload_part_size: Annotated[
        int,
        Field(description="Number of bytes sent to the store per multipart upload part"),
    ] = 8 * 1024 * 1024

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, value: str) -> str:
        url = urlparse(value)
        if url.scheme not in ("http", "https") or not url.netloc:
            raise ValueError(f"API_URL must be an absolute http(s) URL, got {value!r}")
        return value

    @field_validator("s3_listobjects_limit")
    @classmethod
    def validate_listobjects_limit(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("S3_LISTOBJECTS_LIMIT must be a number greater than 0")
        return value

    @field_validator("upload_part_size")
    @classmethod
    def validate_part_size(cls, value: int) -> int:
        if value < MIN_PART_SIZE:
            raise ValueError(f"UPLOAD_PART_SIZE must be at least {MIN_PART_SIZE} bytes")
        return value

    @model_validator(mode="after")
    def validate_s3(self) -> "Settings":
        if not self.s3_region and not self.s3_endpoint:
            raise ValueError("S3_REGION and/or S3_ENDPOINT must be defined")
        if bool(self.s3_access_key_id) != bool(self.s3_secret_access_key):
            raise ValueError("S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be given together")
        return self

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")


def load_settings(**overrides) -> Settings:
    """Read the settings, turning validation problems into a ConfigurationError"""
    env_file = overrides.get("env_file") or os.environ.get("ENV_FILE", ".env")
    # environment variables win over the .env file
    load_dotenv(env_file, override=False)
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@functools.lru_cache()
def get_settings() -> Settings:
    return load_settings()


def validate_settings(settings: Settings | None = None) -> str | None:
    settings = settings or get_settings()
    if settings.api_url == DEFAULT_API_URL:
        return "API_URL is not defined. Unless you are in a development environment, things are not going to work!"
    return None


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{k.upper()}={v}")
