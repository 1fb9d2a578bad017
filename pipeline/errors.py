from pydantic import ValidationError


class PipelineError(Exception):
    """Base class for errors raised by the order pipeline."""


class ConfigurationError(PipelineError, ValueError):
    """Invalid retry, failure-injection or step parameters. Raised at construction."""


class CollaboratorUnavailable(PipelineError):
    """An external collaborator cannot be reached or is misconfigured (e.g. missing credentials)."""

    def __init__(self, collaborator: str, reason: str):
        super().__init__(f"{collaborator} unavailable: {reason}")
        self.collaborator = collaborator
        self.reason = reason


__all__ = [
    "PipelineError",
    "ConfigurationError",
    "CollaboratorUnavailable",
    "ValidationError",
]
