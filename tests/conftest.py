"""Shared fixtures for the test suite."""

import pytest

from procore_openapi.core.errors import to_json_pointer


class WarningCollector:
    """Warning handler which records (JSON Pointer, message) pairs."""

    def __init__(self):
        self.warnings: list[tuple[str, str]] = []

    def __call__(self, transform_path: list[str], message: str) -> None:
        self.warnings.append((to_json_pointer(transform_path), message))

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.warnings]


@pytest.fixture
def warn():
    """Collect warnings emitted by a transformer."""
    return WarningCollector()
