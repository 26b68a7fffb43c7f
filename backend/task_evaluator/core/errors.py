"""Typed failures raised by the evaluation pipeline.

Every stage raises its own error class; nothing in the pipeline converts one
kind into another. The HTTP layer maps ``status_code`` onto the response and
``retryable`` tells callers whether resubmitting unchanged input can help.
"""

from typing import Any


class EvaluationError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidSubmission(EvaluationError):
    """Caller input is malformed; it must be fixed before resubmitting."""

    status_code = 400


class ExtractionFailure(EvaluationError):
    """The OCR engine could not process the image."""

    retryable = True


class AIProtocolError(EvaluationError):
    """The model replied, but not with the JSON object we asked for."""


class AIServiceError(EvaluationError):
    """The model could not be reached or returned an error."""

    retryable = True


class StorageError(EvaluationError):
    """The evaluation could not be read from or written to the database."""
