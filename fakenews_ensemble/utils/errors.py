"""
Pipeline Error Types

Every stage raises one of these when it cannot continue. They are all
fatal to the run; the CLI reports the stage and field that failed.
"""

from typing import Optional


class PipelineError(Exception):
    """
    Base class for all pipeline failures.

    Attributes:
        stage: Pipeline stage that raised (e.g. 'encoder', 'normalizer')
        field: Column or model name involved, if any
    """

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        stage: Optional[str] = None
    ):
        super().__init__(message)
        self.field = field
        if stage is not None:
            self.stage = stage

    def describe(self) -> str:
        """One-line summary naming stage and field."""
        location = f"[{self.stage}]"
        if self.field is not None:
            location += f" field={self.field!r}"
        return f"{location} {self}"


class SchemaError(PipelineError):
    """A configured field is missing, or the table violates the schema."""
    stage = "schema"


# Name used by the encoder contract
InvalidFieldError = SchemaError


class UnknownCategoryError(PipelineError):
    """A categorical value was not seen when the encoding was fit."""
    stage = "encoder"


class DegenerateFieldError(PipelineError):
    """A continuous field has (near) zero standard deviation."""
    stage = "normalizer"


class NotFittedError(PipelineError):
    """Prediction was requested before fit()."""
    stage = "model"


class InsufficientDataError(PipelineError):
    """Training data is empty or contains a single class."""
    stage = "model"


class DimensionMismatchError(PipelineError):
    """Probability vectors are not aligned one-to-one by record id."""
    stage = "ensemble"


class ConfigError(PipelineError):
    """Invalid configuration value."""
    stage = "config"
