"""Error taxonomy shared by the auth, video and upload modules.

Each error kind carries the HTTP status it maps to and a stable machine
readable code. Routers translate them into ``HTTPException``; anything that
is not an ``ServiceError`` is an unclassified server error.
"""


class ServiceError(Exception):
    """Base exception for classified, user-facing failures."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.error_code


class BadRequest(ServiceError):
    """Malformed or missing input."""

    status_code = 400
    error_code = "bad_request"


class Unauthenticated(ServiceError):
    """Missing, invalid or expired bearer credential."""

    status_code = 401
    error_code = "unauthenticated"


class Forbidden(ServiceError):
    """Caller does not own the target resource."""

    status_code = 403
    error_code = "forbidden"


class NotFound(ServiceError):
    """Unknown video identifier."""

    status_code = 404
    error_code = "not_found"


class PayloadTooLarge(ServiceError):
    """Upload exceeds the configured size ceiling."""

    status_code = 413
    error_code = "payload_too_large"


class UnsupportedMediaType(ServiceError):
    """Declared content type is not accepted for this upload."""

    status_code = 415
    error_code = "unsupported_media_type"


class ProbeFailed(ServiceError):
    """The media probe exited unsuccessfully."""

    status_code = 422
    error_code = "probe_failed"

    def __init__(self, message: str = "", diagnostics: str = ""):
        super().__init__(message)
        self.diagnostics = diagnostics


class ProbeParseError(ServiceError):
    """The media probe output lacked the expected stream fields."""

    status_code = 422
    error_code = "probe_parse_error"


class TranscodeFailed(ServiceError):
    """Fast-start transcoding failed."""

    status_code = 503
    error_code = "transcode_failed"


class StorageWriteFailed(ServiceError):
    """Writing to durable storage failed."""

    status_code = 502
    error_code = "storage_write_failed"


class ProcessTimeout(Exception):
    """An external process exceeded its deadline and was killed."""

    def __init__(self, args: list[str], timeout: float):
        super().__init__(f"{args[0]} timed out after {timeout:.0f}s")
        self.command = args
        self.timeout = timeout
