"""Form-rendering pipeline: merge section snapshots with rule results."""

from formpipe.pipeline.effects import apply_effects
from formpipe.pipeline.errors import (
    AlreadyAttachedError,
    EvaluationError,
    LoaderError,
    PipelineError,
    ProducerFailure,
)
from formpipe.pipeline.form import FormPipeline
from formpipe.pipeline.loaders import FormLoaders
from formpipe.pipeline.pairing import PairingBuffer, zip_streams
from formpipe.pipeline.schedulers import SchedulerProvider
from formpipe.pipeline.scope import CancelToken, SubscriptionScope
from formpipe.pipeline.trigger import RecheckSignal, RecheckTrigger

__all__ = [
    "AlreadyAttachedError",
    "CancelToken",
    "EvaluationError",
    "FormLoaders",
    "FormPipeline",
    "LoaderError",
    "PairingBuffer",
    "PipelineError",
    "ProducerFailure",
    "RecheckSignal",
    "RecheckTrigger",
    "SchedulerProvider",
    "SubscriptionScope",
    "apply_effects",
    "zip_streams",
]
