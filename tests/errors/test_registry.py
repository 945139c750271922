"""Unit tests for textcoach/errors/registry.py and domain exceptions.

Tests verify:
- Pipeline error codes are registered with correct categories and titles
- Domain exceptions carry their code, formatted message, and retry hint
"""

import pytest

from textcoach.errors import (
    ConfigurationError,
    ModelCallError,
    ModelTimeoutError,
    NotFoundError,
    TextcoachError,
    TransactionError,
)
from textcoach.errors.registry import ErrorCategory, get_error, get_errors_by_category


@pytest.mark.parametrize(
    "code,category,retryable",
    [
        ("E-1001", ErrorCategory.DATA, False),
        ("E-2001", ErrorCategory.CONFIG, False),
        ("E-3001", ErrorCategory.MODEL, False),
        ("E-3002", ErrorCategory.MODEL, True),
        ("E-4001", ErrorCategory.STORAGE, True),
    ],
)
def test_pipeline_error_codes_registered(code, category, retryable):
    """All pipeline error codes must be registered."""
    error = get_error(code)
    assert error is not None, f"{code} not found in registry"
    assert error.category == category
    assert error.is_retryable is retryable
    assert error.title
    assert error.remediation


def test_unknown_code_returns_none():
    assert get_error("E-9999") is None


def test_errors_by_category():
    codes = [e.code for e in get_errors_by_category(ErrorCategory.MODEL)]
    assert codes == ["E-3001", "E-3002"]


class TestDomainExceptions:
    """Verify message formatting and attributes."""

    def test_not_found(self) -> None:
        err = NotFoundError("Conversation", "abc")
        assert str(err) == "[E-1001] Conversation 'abc' not found."
        assert err.resource_type == "Conversation"
        assert err.identifier == "abc"
        assert err.is_retryable is False

    def test_configuration(self) -> None:
        err = ConfigurationError("bad PROMPT_VERSION")
        assert err.code == "E-2001"
        assert "bad PROMPT_VERSION" in str(err)

    def test_model_timeout(self) -> None:
        err = ModelTimeoutError(45_000)
        assert "45000 ms" in str(err)
        assert err.is_retryable is False

    def test_model_call(self) -> None:
        err = ModelCallError(attempts=3, details="overloaded")
        assert str(err).startswith("[E-3002]")
        assert "3 attempt(s): overloaded" in str(err)

    def test_transaction(self) -> None:
        err = TransactionError("conv-1", "disk full")
        assert "conv-1" in str(err)
        assert err.details == "disk full"

    def test_all_share_base(self) -> None:
        for err in (
            NotFoundError("Conversation", "x"),
            ConfigurationError("x"),
            ModelTimeoutError(1),
            ModelCallError(1, "x"),
            TransactionError("x", "y"),
        ):
            assert isinstance(err, TextcoachError)
