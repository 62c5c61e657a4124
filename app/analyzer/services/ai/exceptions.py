"""
Shared exceptions for the analysis pipeline.

Each error carries the HTTP status the envelope builder maps it to.
"""


class AnalysisError(Exception):
    """Base class for failures that end an analysis request."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UploadValidationError(AnalysisError):
    """Raised when the uploaded file is missing, not a PDF, or too large."""

    status_code = 400


class PayloadTooLargeError(UploadValidationError):
    """Raised when the encoded request exceeds the upstream body limit."""

    pass


class ConfigurationError(AnalysisError):
    """Raised when the upstream endpoint or credential is not configured."""

    status_code = 500


class UpstreamError(AnalysisError):
    """
    Raised when the upstream AI API fails or returns an unusable reply.

    The message is generic and safe to show to callers; the provider's
    own error text is only logged.
    """

    status_code = 502

    def __init__(self, message: str, *, retryable: bool = False, upstream_status: int | None = None):
        super().__init__(message)
        self.retryable = retryable
        self.upstream_status = upstream_status
