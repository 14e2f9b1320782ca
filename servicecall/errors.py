"""Exceptions raised by servicecall.

ValidationFailure and RequestFailure are only raised by the raising entry
point (ServiceCall.invoke_or_raise). The non-raising entry point reports the
same outcomes as ErrorSet state on the returned instance.

NotImplementedError from a concrete service without a call() method, and
anything raised inside hooks or rule bodies, propagate unchanged.
"""

from typing import Any

from servicecall.error_set import ErrorSet


class ServiceCallError(Exception):
    """Base class for servicecall exceptions."""

    pass


def _derive_message(errors: ErrorSet, message: str | None, default: str) -> str:
    if message:
        return message
    return errors.to_sentence() or default


class ValidationFailure(ServiceCallError):
    """Raised when the initial validation gate fails, before call() ever ran."""

    def __init__(self, errors: ErrorSet | None = None, message: str | None = None):
        self.errors = errors if errors is not None else ErrorSet()
        self.message = _derive_message(self.errors, message, "Validation failed")
        super().__init__(self.message)


class RequestFailure(ServiceCallError):
    """Raised when the request or response validation gate fails.

    ``response`` is None when request validation stopped the call, and holds
    the value call() returned when response validation did.
    """

    def __init__(
        self,
        response: Any = None,
        errors: ErrorSet | None = None,
        message: str | None = None,
    ):
        self.response = response
        self.errors = errors if errors is not None else ErrorSet()
        self.message = _derive_message(self.errors, message, "Request failed")
        super().__init__(self.message)


class ConfigurationError(ServiceCallError):
    """Raised when per-service configuration is misused."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")
