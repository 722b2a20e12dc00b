"""Exception taxonomy for synthesis and revision."""


class BRDEngineError(Exception):
    """Base class for engine failures."""


class EmptyInput(BRDEngineError):
    """Raised when synthesis is requested with no sources."""


class ProviderError(BRDEngineError):
    """Raised when the synthesis provider fails, times out, or returns nothing."""


class SchemaViolation(BRDEngineError):
    """Raised when provider output does not satisfy the document contract.

    The offending output is kept on ``raw_output`` for diagnostics only.
    """

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class InvalidState(BRDEngineError):
    """An instruction arrived before any document exists."""


class SourceNotFound(BRDEngineError, KeyError):
    """Raised when a source id is not in the registry."""

    def __str__(self) -> str:
        return f"Source not found: {self.args[0]}" if self.args else "Source not found"


class SessionNotFound(BRDEngineError, KeyError):
    """Raised when a session id is not in the session store."""

    def __str__(self) -> str:
        return f"Session not found: {self.args[0]}" if self.args else "Session not found"
