"""Error code registry with E-XXXX format codes.

This module defines the error code system for the inference pipeline,
organizing errors into categories:
- E-1xxx: Missing conversation data
- E-2xxx: Configuration errors
- E-3xxx: Model provider errors
- E-4xxx: Storage/transaction errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    DATA = "data"  # E-1xxx: Missing conversation data
    CONFIG = "config"  # E-2xxx: Configuration errors
    MODEL = "model"  # E-3xxx: Model provider errors
    STORAGE = "storage"  # E-4xxx: Storage/transaction errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action the operator should take to resolve.
        is_retryable: Whether the batch can be requeued without intervention.
    """

    code: str  # E-XXXX format
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Data errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.DATA,
        title="Record Not Found",
        message_template="{resource_type} '{identifier}' not found.",
        remediation="Verify ingestion committed the record before the job was queued.",
    ),
    # Configuration errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.CONFIG,
        title="Invalid Configuration",
        message_template="Configuration error: {details}",
        remediation="Check PROMPT_VERSION and the model/timeout environment variables.",
    ),
    # Model errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.MODEL,
        title="Model Timeout",
        message_template="Model call did not complete within {timeout_ms} ms.",
        remediation="Check provider latency. Raise MODEL_TIMEOUT_MS if timeouts persist.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.MODEL,
        title="Model Call Failed",
        message_template="Model call failed after {attempts} attempt(s): {details}",
        remediation="Check provider status and credentials, then requeue the batch.",
        is_retryable=True,
    ),
    # Storage errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.STORAGE,
        title="Write Transaction Failed",
        message_template="Reply write for conversation '{conversation_id}' was rolled back: {details}",
        remediation="No replies were persisted and no jobs were completed. Requeue the batch.",
        is_retryable=True,
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
