"""
Errors raised by the file server.

Each error class has a generic, user-visible message and an HTTP status code.
The text an error is raised with is the internal detail: it is logged, never returned to the client.
"""


class FileServerError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class NotFound(FileServerError):
    status_code = 404
    message = "Not Found"


class BadRequest(FileServerError):
    status_code = 400
    message = "Bad request"


class UpstreamError(FileServerError):
    """The object store could not be reached or answered with an error"""

    status_code = 500
    message = "Error accessing object storage"


class TooManyParts(FileServerError):
    status_code = 500
    message = "Too many parts"


class UploadStreamError(FileServerError):
    """The upload body could not be read from the client"""

    status_code = 500
    message = "Error reading upload"


class ConfigurationError(Exception):
    """Invalid server configuration. Raised at startup, never while handling a request"""
