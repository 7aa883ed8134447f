# apps/api/errors.py
from typing import Optional


class AppError(Exception):
    """Base class for errors the API layer knows how to report."""

    status_code = 500

    def __init__(self, message: str = "", *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or message


class AuthenticationError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 400


class PersistenceError(AppError):
    status_code = 503


class ExternalServiceError(AppError):
    status_code = 502


class EmbeddingProviderError(ExternalServiceError):
    pass


class TranscriptionError(ExternalServiceError):
    pass


class SummarizationError(ExternalServiceError):
    pass
