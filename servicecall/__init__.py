"""servicecall: service objects with a standard call lifecycle.

This package provides:
- ServiceCall base class with invoke() / invoke_or_raise() entry points
- Phased validation rules (default, request, response)
- before_call / after_call hooks
- ErrorSet and the ValidationFailure / RequestFailure exceptions
- Per-service configuration via pydantic-settings
"""

from servicecall.base import Gate, ServiceCall
from servicecall.configurable import ServiceSettings
from servicecall.error_set import ErrorDetail, ErrorSet
from servicecall.errors import (
    ConfigurationError,
    RequestFailure,
    ServiceCallError,
    ValidationFailure,
)
from servicecall.hooks import after_call, before_call
from servicecall.validation import Phase, validates, validator

__all__ = [
    # Service objects
    "Gate",
    "ServiceCall",
    "ServiceSettings",
    # Declarations
    "Phase",
    "after_call",
    "before_call",
    "validates",
    "validator",
    # Errors
    "ConfigurationError",
    "ErrorDetail",
    "ErrorSet",
    "RequestFailure",
    "ServiceCallError",
    "ValidationFailure",
]
__version__ = "0.1.0"
