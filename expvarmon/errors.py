"""
Expvar Monitor - Errors

Exception hierarchy shared by the parser, fetcher, extractor and scheduler.

Configuration errors are fatal at startup. Fetch errors are recovered per
target per round, extraction errors per variable.
"""


class ExpvarmonError(Exception):
    """Base class for all expvarmon errors."""


class ConfigurationError(ExpvarmonError):
    """Invalid configuration, reported before the monitor starts."""


class InvalidSpecError(ConfigurationError):
    """A variable descriptor could not be parsed."""


class InvalidAddressError(ConfigurationError):
    """A port or address could not be resolved into a target URL."""


class FetchError(ExpvarmonError):
    """Retrieving a target's expvar document failed."""

    def __init__(self, address: str, message: str):
        super().__init__(message)
        self.address = address
        self.message = message


class NetworkError(FetchError):
    """The target could not be reached."""


class FetchTimeoutError(NetworkError):
    """The target did not answer within the fetch timeout."""


class EndpointNotFoundError(FetchError):
    """The target answered 404 for the expvar endpoint."""


class UnexpectedStatusError(FetchError):
    """The target answered with a non-success status other than 404."""

    def __init__(self, address: str, status: int):
        super().__init__(address, f"Unexpected HTTP status {status}")
        self.status = status


class MalformedDocumentError(FetchError):
    """The response body is not a JSON object."""


class ExtractionError(ExpvarmonError):
    """A variable path could not be resolved to a numeric value."""


class PathNotFoundError(ExtractionError):
    """A path segment is absent from the document."""


class TypeMismatchError(ExtractionError):
    """A node has the wrong shape for the requested access."""
