"""Test helper utilities for pipeline testing."""

from tests.helpers.mock_model import MockModelClient, ModelCall
from tests.helpers.seed import COACH_NUMBER, USER_NUMBER, ts

__all__ = [
    "COACH_NUMBER",
    "MockModelClient",
    "ModelCall",
    "USER_NUMBER",
    "ts",
]
