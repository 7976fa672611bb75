"""Custom exceptions for the response pipeline."""


class PipelineError(Exception):
    """Base class for errors that map to a stable API error code."""

    code = "internal_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RequestValidationFailed(PipelineError):
    """Raised when input is malformed in a way the caller can fix."""

    code = "validation_error"
    status_code = 422


class UnauthorizedError(PipelineError):
    """Raised when a token is missing, invalid or of the wrong kind."""

    code = "unauthorized"
    status_code = 401


class ForbiddenError(PipelineError):
    """Raised when a valid token does not cover the requested resource."""

    code = "forbidden"
    status_code = 403


class NotFoundError(PipelineError):
    """Raised when a survey or response does not exist for the caller."""

    code = "not_found"
    status_code = 404


class PreconditionFailedError(PipelineError):
    """Raised when a pipeline stage is missing its required input."""

    code = "precondition_failed"
    status_code = 409


class InternalError(PipelineError):
    """Raised when infrastructure fails; the caller may retry."""

    code = "internal_error"
    status_code = 500
    retryable = True


class InvalidTokenError(UnauthorizedError):
    """Raised when a token is malformed, expired or mis-signed."""

    def __init__(self, reason: str = "Invalid token"):
        super().__init__(reason)


class StorageError(Exception):
    """Raised when an object store operation fails."""

    def __init__(self, object_name: str, operation: str, cause: Exception | None = None):
        self.object_name = object_name
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage {operation} failed for '{object_name}'")


class JobPublishError(Exception):
    """Raised when publishing a job to the queue fails."""

    def __init__(self, queue_name: str, cause: Exception | None = None):
        self.queue_name = queue_name
        self.cause = cause
        super().__init__(f"Failed to publish job to queue '{queue_name}'")


class TranscriptionError(Exception):
    """Raised when the external transcription service fails."""

    def __init__(self, audio_location: str, cause: Exception | None = None):
        self.audio_location = audio_location
        self.cause = cause
        super().__init__(f"Failed to transcribe audio at '{audio_location}'")


class AnalysisServiceError(Exception):
    """Raised when the external analysis service fails."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class CacheServiceError(Exception):
    """Raised when cache operations fail."""

    def __init__(self, key: str, operation: str, cause: Exception | None = None):
        self.key = key
        self.operation = operation
        self.cause = cause
        super().__init__(f"Cache {operation} failed for key '{key}'")


class ResponsePersistenceError(Exception):
    """Raised when saving response data to the database fails."""

    def __init__(self, response_id: str, cause: Exception | None = None):
        self.response_id = response_id
        self.cause = cause
        super().__init__(f"Failed to persist response '{response_id}' to database")


class EmptyTranscriptionError(Exception):
    """Raised when the transcription service returns no speech."""

    def __init__(self, response_id: str):
        self.response_id = response_id
        super().__init__(f"Transcription returned no speech for response '{response_id}'")
