"""Exception hierarchy shared by the embedding clients, vector stores and services."""


class RetrievalError(Exception):
    """Base class for all errors raised by the retrieval pipeline."""


class ConfigurationError(RetrievalError, ValueError):
    """A required configuration value is missing or invalid. Fatal, never retried."""


class ProviderUnavailable(ConfigurationError):
    """The selected embedding provider has no API credential configured."""


class ProviderError(RetrievalError):
    """The remote embedding call failed or returned a malformed payload.

    Attributes:
        status_code: HTTP status of the failed response, if one was received.
        transient:   True when a retry may succeed (5xx, 429, transport errors).
    """

    def __init__(self, message: str, status_code: int | None = None, transient: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class StoreUnavailable(RetrievalError):
    """The vector store could not serve a request on a hard-failing path."""


class IngestionFailed(RetrievalError):
    """Ingestion of a document produced too few embedded chunks to be stored.

    Attributes:
        report: The IngestionReport describing which chunks failed and why.
    """

    def __init__(self, message: str, report=None) -> None:
        super().__init__(message)
        self.report = report
