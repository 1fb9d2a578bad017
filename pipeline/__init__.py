# Only leaf modules are re-exported here: services import pipeline.errors and
# pipeline.failure_injector, while pipeline.steps imports services.
from pipeline.errors import CollaboratorUnavailable, ConfigurationError, PipelineError, ValidationError
from pipeline.failure_injector import FailureInjector
from pipeline.result import Failure, StepResult, Success
from pipeline.retry import Exhausted, RetryPolicy

__all__ = [
    "CollaboratorUnavailable",
    "ConfigurationError",
    "Exhausted",
    "Failure",
    "FailureInjector",
    "PipelineError",
    "RetryPolicy",
    "StepResult",
    "Success",
    "ValidationError",
]
