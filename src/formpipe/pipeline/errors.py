"""Pipeline exception hierarchy.

Only :class:`AlreadyAttachedError` is ever raised to callers. The other
errors are built for the error reporter and never escape the pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from formpipe.domain.effects import EvaluationFailure


class PipelineError(Exception):
    """Base class for form pipeline errors."""


class AlreadyAttachedError(PipelineError):
    """``attach()`` was called on a pipeline that is already attached."""


class ProducerFailure(PipelineError):
    """A section source or rule evaluator terminated abnormally."""

    def __init__(self, source: str, cause: BaseException) -> None:
        super().__init__(f"{source} failed: {cause}")
        self.source = source
        self.cause = cause


class EvaluationError(PipelineError):
    """The rule engine reported a failure instead of effects."""

    def __init__(self, failure: EvaluationFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure
        self.__cause__ = failure.cause


class LoaderError(PipelineError):
    """A one-shot form stream (title, dates, coordinates) failed."""

    def __init__(self, stream: str, cause: BaseException) -> None:
        super().__init__(f"{stream} stream failed: {cause}")
        self.stream = stream
        self.cause = cause
