class ChatIngestError(Exception):
    """Base exception for chat ingestion."""


class ConfigError(ChatIngestError):
    """Raised when configuration is missing or invalid."""


class IngestError(ChatIngestError):
    """Raised when the upload pipeline fails."""


class ValidationError(IngestError):
    """Raised when an upload is rejected before any provider call."""


class EmptyFileError(ValidationError):
    """Raised when the uploaded export has no content."""

    def __init__(self, message: str = "File appears to be empty"):
        super().__init__(message)


class EmptyCorpusError(ValidationError):
    """Raised when parsing retains no messages at all."""


class NoMessagesForParticipantError(ValidationError):
    def __init__(self, participant: str):
        self.participant = participant
        super().__init__(
            f'No messages found for "{participant}". '
            "Please check the name spelling."
        )


class InsufficientMessagesError(ValidationError):
    def __init__(self, count: int, participant: str, minimum: int):
        self.count = count
        self.participant = participant
        self.minimum = minimum
        super().__init__(
            f"Only {count} messages found for \"{participant}\". "
            f"Need at least {minimum} messages for better AI responses."
        )


class ExternalServiceError(IngestError):
    """Raised when an external service fails (OpenAI/Pinecone/Redis)."""


class EmbeddingError(ExternalServiceError):
    """Raised when the embedding provider rejects or fails a request."""


class VectorStoreError(ExternalServiceError):
    """Raised when the vector store cannot be checked, created or written."""


class EmbeddingPipelineExhaustedError(IngestError):
    def __init__(self, attempted: int):
        self.attempted = attempted
        super().__init__(
            f"Failed to create any embeddings for {attempted} messages. "
            "This might be due to API issues."
        )


class PipelineCancelledError(IngestError):
    """Raised when an upload is cancelled or runs past its deadline."""


class UnexpectedError(IngestError):
    """Fallback for unexpected exceptions raised during ingestion."""


def wrap_exception(error: Exception) -> IngestError:
    """
    Map foreign exceptions to suitable ingest_exceptions types.
    Use this to standardise error handling in the upload pipeline.
    """
    if isinstance(error, IngestError):
        return error

    if isinstance(error, (TimeoutError, ConnectionError)):
        return ExternalServiceError(str(error))

    if isinstance(error, (ValueError, KeyError, TypeError, UnicodeError)):
        return ValidationError(str(error))

    if isinstance(error, OSError):
        return IngestError(str(error))

    return UnexpectedError(str(error))


def describe_failure(error: BaseException) -> str:
    """
    Build the user-facing message stored on an ``error`` progress record.
    Typed errors keep their own text; anything else is classified by
    keywords in the failure text.
    """
    if isinstance(error, (ValidationError, PipelineCancelledError,
                          EmbeddingPipelineExhaustedError)):
        return str(error)

    text = str(error)
    lowered = text.lower()

    if isinstance(error, ConfigError) or "api key" in lowered or "api_key" in lowered:
        return f"Configuration error: {text}" if text else "Configuration error"
    if isinstance(error, VectorStoreError) or any(
        word in lowered for word in ("vector", "collection", "pinecone")
    ):
        return "Vector database error. Please try again later."
    if isinstance(error, EmbeddingError) or "embedding" in lowered:
        return "Failed to process messages for AI. Please try again later."
    return "Failed to process file. Please try again."
