"""Error handling framework for the inference pipeline.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions carrying those codes

Error categories:
- E-1xxx: Missing conversation data
- E-2xxx: Configuration errors
- E-3xxx: Model provider errors
- E-4xxx: Storage/transaction errors
"""

from textcoach.errors.domain import (
    ConfigurationError,
    ModelCallError,
    ModelTimeoutError,
    NotFoundError,
    TextcoachError,
    TransactionError,
)
from textcoach.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Exceptions
    "TextcoachError",
    "NotFoundError",
    "ConfigurationError",
    "ModelTimeoutError",
    "ModelCallError",
    "TransactionError",
]
