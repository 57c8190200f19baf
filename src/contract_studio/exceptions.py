"""
Exception hierarchy for Contract Studio.

Every error carries the HTTP status the API layer reports it with.
"""


class ContractStudioError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ContractStudioError):
    """Required input missing or malformed. Raised before any upstream call."""

    status_code = 400


class NotFoundError(ContractStudioError):
    """Record does not exist or is not owned by the caller."""

    status_code = 404


class ProviderError(ContractStudioError):
    """Failure attributable to an AI backend route."""

    status_code = 502

    def __init__(self, message: str, provider: str):
        super().__init__(message)
        self.provider = provider


class ConfigurationError(ProviderError):
    """Credential for a backend route is not configured."""

    status_code = 503

    def __init__(self, message: str, provider: str, credential: str):
        super().__init__(message, provider)
        self.credential = credential


class UpstreamError(ProviderError):
    """Backend returned an error status, a malformed payload, or was unreachable."""

    def __init__(self, message: str, provider: str, upstream_status: int | None = None):
        super().__init__(message, provider)
        self.upstream_status = upstream_status


class PersistenceError(ContractStudioError):
    """Reading from or writing to the backing store failed."""

    status_code = 500


class _WorkflowError(ContractStudioError):
    """Workflow failure whose status follows the wrapped provider error."""

    def __init__(self, message: str, cause: ProviderError | None = None):
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.status_code = cause.status_code


class AnalysisError(_WorkflowError):
    """Document analysis could not reach the AI backend."""


class GenerationError(_WorkflowError):
    """Contract generation failed. Never accompanied by content."""
