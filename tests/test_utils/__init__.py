"""Shared test utilities."""

from tests.test_utils import factories, fakes, mocks, strategies

__all__ = [
    "factories",
    "fakes",
    "mocks",
    "strategies",
]
