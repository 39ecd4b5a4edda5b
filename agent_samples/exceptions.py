# Copyright (c) Microsoft. All rights reserved.


class AgentSamplesException(Exception):
    """Base class for exceptions raised by agent_samples."""

    pass


class InvalidArgumentError(AgentSamplesException, ValueError):
    """An argument or a piece of configuration is not valid."""

    pass


class VectorIndexException(AgentSamplesException):
    """Base class for vector index exceptions."""

    pass


class DimensionMismatchError(VectorIndexException):
    """An embedding's length disagrees with the dimensionality of the index."""

    def __init__(self, expected: int, actual: int, message: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"Expected an embedding of dimension {expected}, got {actual}.")


class ServiceException(AgentSamplesException):
    """Base class for errors related to the hosted model service."""

    pass


class ServiceInitializationError(ServiceException):
    """A client could not be created, usually because configuration is missing."""

    pass


class ServiceResponseException(ServiceException):
    """The hosted service failed to answer a request.

    Attributes:
        status_code: The HTTP status code returned by the service, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServiceAuthenticationError(ServiceResponseException):
    """The service rejected the credentials (HTTP 401/403)."""

    pass


class ServiceNotFoundError(ServiceResponseException):
    """The requested deployment or resource does not exist (HTTP 404)."""

    pass


class ServiceRateLimitError(ServiceResponseException):
    """The service throttled the request (HTTP 429)."""

    pass


class ServiceConnectionError(ServiceResponseException):
    """The service could not be reached or the request timed out."""

    pass
