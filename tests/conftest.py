"""Pytest configuration and shared fixtures.

This module provides:
- Settings/config cache isolation between tests
- Small service classes reused across lifecycle tests
"""

import pytest

from servicecall import ServiceCall, Phase, before_call, validates, validator
from servicecall.configurable import clear_config_cache
from servicecall.core.config import clear_settings_cache


@pytest.fixture(autouse=True)
def _isolate_caches():
    """Clear library settings and per-service configuration around each test."""
    clear_settings_cache()
    clear_config_cache()
    yield
    clear_settings_cache()
    clear_config_cache()


class EchoService(ServiceCall):
    """Trims its input, echoes it back, and rejects "baz" as a response."""

    validations = [validates("foo", presence=True)]

    def __init__(self, foo: str):
        self.foo = foo
        self.call_count = 0

    @before_call
    def strip_foo(self):
        self.foo = self.foo.strip()

    def call(self):
        self.call_count += 1
        return {"foo": self.foo}

    @validator(on=Phase.RESPONSE)
    def reject_baz(self):
        if self.response == {"foo": "baz"}:
            self.errors.add("base", "Response must not be baz")


@pytest.fixture
def echo_service() -> type[EchoService]:
    return EchoService
