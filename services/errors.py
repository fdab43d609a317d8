"""Error types raised by the analysis and report pipeline.

Each error carries the HTTP status the API layer answers with. The message
is the only detail that reaches the caller.
"""


class AgriCareError(Exception):
    """Base class for request-ending pipeline failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(AgriCareError):
    """Missing, malformed, oversized, or wrong-typed input."""

    status_code = 400


class UnsupportedImageTypeError(InvalidInputError):
    status_code = 415


class ImageTooLargeError(InvalidInputError):
    status_code = 413


class ServiceUnavailableError(AgriCareError):
    """The vision model cannot be reached because it is not configured."""

    status_code = 503


class UpstreamError(AgriCareError):
    """The vision model call itself failed (network, quota, API error)."""

    status_code = 502


class AnalysisParseError(AgriCareError):
    """The model answered, but not with a parseable JSON object."""

    status_code = 502


class InvalidDocumentError(AgriCareError):
    """A report payload that is not a base64 PDF data URL."""

    status_code = 400
