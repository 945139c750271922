"""Typed domain exceptions raised by the inference pipeline.

Every exception carries an E-XXXX code from the registry so callers
(the queue front end) can decide whether to requeue a batch without
matching on message strings.

Usage:
    # In the pipeline
    raise NotFoundError("Conversation", conversation_id)

    # In the caller
    try:
        result = await processor.process(jobs)
    except TextcoachError as e:
        if e.is_retryable:
            requeue(jobs)
"""

from textcoach.errors.registry import get_error


class TextcoachError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        code: Error code in E-XXXX format.
        is_retryable: Registry hint for the caller's requeue decision.
    """

    code: str = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        error_def = get_error(self.code)
        self.is_retryable = error_def.is_retryable if error_def else False

    @classmethod
    def _format(cls, **context: object) -> str:
        error_def = get_error(cls.code)
        if error_def is None:
            return cls.__name__
        try:
            return error_def.message_template.format(**context)
        except KeyError:
            return error_def.message_template

    def __str__(self) -> str:
        """Return message prefixed with the error code."""
        return f"[{self.code}] {self.args[0]}"


class NotFoundError(TextcoachError):
    """Inbound message or conversation is missing."""

    code = "E-1001"

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(
            self._format(resource_type=resource_type, identifier=identifier)
        )
        self.resource_type = resource_type
        self.identifier = identifier


class ConfigurationError(TextcoachError):
    """Settings or prompt version/tier cannot be resolved."""

    code = "E-2001"

    def __init__(self, details: str) -> None:
        super().__init__(self._format(details=details))
        self.details = details


class ModelTimeoutError(TextcoachError):
    """Model call exceeded its deadline. Never retried."""

    code = "E-3001"

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(self._format(timeout_ms=timeout_ms))
        self.timeout_ms = timeout_ms


class ModelCallError(TextcoachError):
    """Model call failed on every attempt."""

    code = "E-3002"

    def __init__(self, attempts: int, details: str) -> None:
        super().__init__(self._format(attempts=attempts, details=details))
        self.attempts = attempts
        self.details = details


class TransactionError(TextcoachError):
    """Write phase failed and was rolled back."""

    code = "E-4001"

    def __init__(self, conversation_id: str, details: str) -> None:
        super().__init__(
            self._format(conversation_id=conversation_id, details=details)
        )
        self.conversation_id = conversation_id
        self.details = details
