"""Service layer for the inference pipeline.

Provides the job batch processor, the retry executor around model calls,
sampling-boundary detection, and user-context extraction.
"""

from textcoach.services.background import BackgroundTaskRunner
from textcoach.services.context_extraction import ContextExtractor
from textcoach.services.inference_processor import (
    InferenceProcessor,
    InferenceResult,
    JobRef,
    get_default_processor,
    run_inference,
    split_reply,
)
from textcoach.services.model_client import (
    AnthropicModelClient,
    ModelClient,
    ModelResponse,
    call_model,
)
from textcoach.services.retry import RetryPolicy, with_retry
from textcoach.services.sampling import should_trigger

__all__ = [
    "InferenceProcessor",
    "InferenceResult",
    "JobRef",
    "get_default_processor",
    "run_inference",
    "split_reply",
    "ContextExtractor",
    "BackgroundTaskRunner",
    "ModelClient",
    "ModelResponse",
    "AnthropicModelClient",
    "call_model",
    "RetryPolicy",
    "with_retry",
    "should_trigger",
]
