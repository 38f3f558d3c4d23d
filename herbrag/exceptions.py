"""
Exception types shared across extraction, storage and search.
"""


class HerbragError(Exception):
    """Base class for all errors raised by this package."""


class ParseError(HerbragError, ValueError):
    """LLM output could not be turned into JSON, even after repair."""

    def __init__(self, message: str, content: str = ""):
        super().__init__(message)
        self.content = content


class CollaboratorUnavailable(HerbragError):
    """An external service (LLM, embedding model, database) failed or timed out."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class ValidationError(HerbragError, ValueError):
    """Caller input cannot be processed, e.g. a document without usable text."""
