"""Property-based tests for the call lifecycle using Hypothesis.

These tests verify properties that must hold for any input:
- success() always equals errors.is_empty(), at every read
- call() runs exactly once when the default and request phases pass, never otherwise
- invoke() and invoke_or_raise() agree on which gate stops the call
- Hooks run in inheritance order whatever the hierarchy depth
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from servicecall import (
    Phase,
    RequestFailure,
    ServiceCall,
    ValidationFailure,
    after_call,
    before_call,
    validator,
)

pytestmark = pytest.mark.unit

hypothesis_settings = settings(
    max_examples=100,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)


class GatedService(ServiceCall):
    """Fails the phases named in ``failing``; counts executions."""

    def __init__(self, failing: frozenset[str]):
        self.failing = failing
        self.executions = 0

    @validator
    def check_default(self):
        if "default" in self.failing:
            self.errors.add("base", "default failed")

    @before_call
    def maybe_fail_in_hook(self):
        if "before" in self.failing:
            self.errors.add("base", "before hook failed")

    @validator(on=Phase.REQUEST)
    def check_request(self):
        if "request" in self.failing:
            self.errors.add("base", "request failed")

    def call(self):
        self.executions += 1
        return sorted(self.failing)

    @validator(on=Phase.RESPONSE)
    def check_response(self):
        if "response" in self.failing:
            self.errors.add("base", "response failed")


failing_sets = st.frozensets(st.sampled_from(["default", "before", "request", "response"]))


def _expected_gate(failing: frozenset[str]) -> str | None:
    if "default" in failing:
        return "initial"
    if "before" in failing or "request" in failing:
        return "request"
    if "response" in failing:
        return "response"
    return None


class TestLifecycleInvariants:
    @given(failing=failing_sets)
    @hypothesis_settings
    def test_success_matches_empty_errors(self, failing):
        service = GatedService.invoke(failing)
        assert service.success() == service.errors.is_empty()
        assert service.success() == (not failing)

    @given(failing=failing_sets, late=st.booleans())
    @hypothesis_settings
    def test_success_is_read_time(self, failing, late):
        service = GatedService.invoke(failing)
        if late:
            service.errors.add("base", "late")
        assert service.success() == service.errors.is_empty()

    @given(failing=failing_sets)
    @hypothesis_settings
    def test_call_runs_at_most_once(self, failing):
        service = GatedService.invoke(failing)
        gate = _expected_gate(failing)
        executed = gate is None or gate == "response"
        assert service.executions == (1 if executed else 0)
        assert service.has_response == executed

    @given(failing=failing_sets)
    @hypothesis_settings
    def test_entry_points_agree(self, failing):
        gate = _expected_gate(failing)
        returned = GatedService.invoke(failing)

        if gate is None:
            raised = GatedService.invoke_or_raise(failing)
            assert raised.response == returned.response
            return

        expected_exc = ValidationFailure if gate == "initial" else RequestFailure
        with pytest.raises(expected_exc) as exc_info:
            GatedService.invoke_or_raise(failing)
        assert exc_info.value.errors.full_messages() == returned.errors.full_messages()
        if expected_exc is RequestFailure:
            assert exc_info.value.response == returned.response

    @given(failing=failing_sets)
    @hypothesis_settings
    def test_valid_is_true_whenever_response_set(self, failing):
        service = GatedService.invoke(failing)
        if service.has_response:
            assert service.valid()


def _build_chain(depth: int) -> type[ServiceCall]:
    """Build a ``depth``-level hierarchy where each level adds one before and one after hook."""
    klass: type[ServiceCall] = ServiceCall
    for level in range(depth):

        def before(self, level=level):
            self.trace.append(f"before{level}")

        def after(self, level=level):
            self.trace.append(f"after{level}")

        body = {
            f"before_{level}": before_call(before),
            f"after_{level}": after_call(after),
        }
        if level == 0:
            body["__init__"] = lambda self: setattr(self, "trace", [])
            body["call"] = lambda self: self.trace.append("call")
        klass = type(f"Level{level}", (klass,), body)
    return klass


class TestHookOrdering:
    @given(depth=st.integers(min_value=1, max_value=6))
    @hypothesis_settings
    def test_inherited_hooks_run_outermost_first(self, depth):
        service = _build_chain(depth).invoke()
        expected = (
            [f"before{i}" for i in range(depth)]
            + ["call"]
            + [f"after{i}" for i in range(depth)]
        )
        assert service.trace == expected
