"""
Error taxonomy for the scoring and personalization engine.

- InputError: malformed chunk text or embedding; raised synchronously, nothing is scored.
- ConflictError: duplicate decision, unknown decision/chunk; never silently overwritten.
- JudgeError: remote judge failure; only raised inside the judge adapter, which
  converts it to the neutral fallback.
- StoreError: a persisted store exists but cannot be read; the engine refuses to
  start empty over it.
"""


class SignalEngineError(Exception):
    """Base class for all engine errors."""


class InputError(SignalEngineError):
    """Caller supplied input the engine cannot score."""


class InvalidChunkError(InputError):
    """Chunk text is empty or otherwise unusable."""


class EmbeddingDimensionError(InputError):
    """Vector length does not match the configured embedding dimension."""

    def __init__(self, expected: int, actual: int, context: str = ""):
        self.expected = expected
        self.actual = actual
        suffix = f" ({context})" if context else ""
        super().__init__(f"Expected embedding of dimension {expected}, got {actual}{suffix}")


class ConflictError(SignalEngineError):
    """Operation conflicts with the stored state."""


class DuplicateDecisionError(ConflictError):
    """A decision already exists for this (chunk, user) pair."""

    def __init__(self, chunk_id: str, user_id: str):
        self.chunk_id = chunk_id
        self.user_id = user_id
        super().__init__(f"Decision already exists for chunk={chunk_id} user={user_id}")


class UnknownDecisionError(ConflictError):
    """Feedback refers to a decision that does not exist."""


class UnknownChunkError(ConflictError):
    """A decision refers to a chunk the chunk store cannot resolve."""


class JudgeError(SignalEngineError):
    """Remote judge failed or returned an unusable response."""


class StoreError(SignalEngineError):
    """A persisted store file exists but cannot be parsed."""
