"""Exception hierarchy for BMark."""

from typing import Optional


class BMarkError(Exception):
    """Base class for all BMark errors."""


class CompletionError(BMarkError):
    """A single model's completion request failed.

    The message is shown to users in place of that model's answer.
    """

    def __init__(self, message: str, model_id: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.model_id = model_id
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class GatewayError(BMarkError):
    """The completion gateway rejected a non-completion call (e.g. model listing)."""


class StoreError(BMarkError):
    """The persistence store failed an operation."""


class ConfigurationError(BMarkError):
    """A required credential or setting is missing."""


class NoModelsSelectedError(BMarkError):
    """None of the requested catalog ids matched a known model."""
