"""Exception hierarchy for chunkflow."""


class ChunkflowError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(ChunkflowError):
    """Raised when a provider exposes no models at all."""


class BackendError(ChunkflowError):
    """Raised when a completion backend call fails after all retries."""


class ChunkExecutionError(ChunkflowError):
    """A single chunk's backend call failed during a chunked run.

    Never raised to callers: the orchestrator records it as that chunk's
    result and moves on to the next chunk.
    """

    def __init__(self, chunk_index: int, cause: BaseException) -> None:
        self.chunk_index = chunk_index
        self.cause = cause
        super().__init__(f"Chunk {chunk_index + 1} failed: {cause}")


class StreamCancelledError(ChunkflowError):
    """Raised when the caller aborts an orchestration call."""
