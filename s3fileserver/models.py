from datetime import datetime

from pydantic import BaseModel, Field


######################## OBJECT STORE #########################


class ObjectEntry(BaseModel):
    """An object returned by a listing call"""

    key: str
    size: int
    last_modified: datetime


class ListingPage(BaseModel):
    """One page of a delimited prefix listing, as returned by the object store"""

    entries: list[ObjectEntry] = Field(default_factory=list)
    common_prefixes: list[str] = Field(default_factory=list)
    next_cursor: str | None = None  # only set if more pages exist
    status_code: int = 200


class ObjectHead(BaseModel):
    key: str
    size: int | None = None
    content_type: str | None = None
    last_modified: datetime | None = None
    etag: str | None = None


class UploadedPart(BaseModel):
    part_number: int
    etag: str


######################## API RESPONSES #########################


class ViewFile(BaseModel):
    name: str = Field(description="File name, relative to the listed path")
    last_modified: datetime = Field(description="Last modification time (RFC 3339)")
    size: int = Field(description="Size in bytes")
    download_url: str | None = Field(default=None, description="URL that redirects to a temporary download link")


class ViewResponse(BaseModel):
    path: str = Field(description="The listed path, always ending with a slash unless it is the root")
    files: list[ViewFile] | None = Field(default=None, description="Files directly under this path")
    folders: list[str] | None = Field(default=None, description="Names of the folders directly under this path")
    next_cursor: str | None = Field(default=None, description="Cursor to request the next page, if any")

    def to_json(self) -> bytes:
        """Serialize for the cache and the client, leaving out absent fields"""
        return self.model_dump_json(exclude_none=True).encode("utf-8")
