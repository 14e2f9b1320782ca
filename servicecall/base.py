"""ServiceCall — base class for service objects and the invocation engine.

A service object wraps one domain operation. Subclasses define their own
constructor and a ``call()`` method; callers go through one of two entry
points, which construct an instance and drive it through the lifecycle:

    1. construct         cls(*args, **kwargs)
    2. initial validate  default-phase rules              gate
    3. before hooks      @before_call methods
    4. request validate  request-phase rules              gate
    5. execute           response = call()
    6. response validate response-phase rules            gate
    7. after hooks       @after_call methods
    8. return            the instance

A gate halts the lifecycle when ``success()`` is false at that point.
``invoke()`` returns the halted instance; ``invoke_or_raise()`` raises
ValidationFailure (initial gate) or RequestFailure (request/response gates,
and errors added by after hooks).

Errors added by before hooks are not checked on their own; they halt the
lifecycle at the request gate.

Services that define ``__iter__`` are lazy-sequence producers. They still
run ``call()`` exactly once, but its return value is not stored. The producer sets
its response while being iterated, via ``_set_response()``. Response-phase
rules therefore run before any element exists and may see no response.

Example:
    class Echo(ServiceCall):
        validations = [validates("foo", presence=True)]

        def __init__(self, foo: str):
            self.foo = foo

        @before_call
        def strip_foo(self):
            self.foo = self.foo.strip()

        def call(self):
            return {"foo": self.foo}

    Echo.invoke(" bar ").response  # {"foo": "bar"}
"""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, ClassVar, Self

from servicecall import configurable
from servicecall.configurable import ServiceSettings
from servicecall.core.config import get_settings
from servicecall.core.logger import bound_contextvars, get_logger
from servicecall.error_set import ErrorSet
from servicecall.errors import RequestFailure, ValidationFailure
from servicecall.hooks import Hook, HookKind, HookRegistry
from servicecall.validation import Phase, Rule, RuleRegistry

logger = get_logger(__name__)

_UNSET: Any = object()


class Gate(str, Enum):
    """Points in the lifecycle where success() is checked."""

    INITIAL = "initial"
    REQUEST = "request"
    RESPONSE = "response"
    FINAL = "final"


class ServiceCall:
    """Base class for service objects.

    Set ``abstract_class = True`` on a class used only as a base for other
    services. Abstract classes don't need to implement ``call()``; the flag is
    read from the class's own body and is not inherited, so
    ``abstract_class`` is False again on every subclass that doesn't set it.

        class BillingService(ServiceCall):
            abstract_class = True

        class CreateInvoice(BillingService):
            def call(self):
                ...
    """

    abstract_class: ClassVar[bool] = False

    _rules: ClassVar[RuleRegistry] = RuleRegistry()
    _hooks: ClassVar[HookRegistry] = HookRegistry()

    _errors: ErrorSet
    _response: Any
    _used_raising_entry: bool
    _entered: bool

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Not inherited: a subclass of an abstract base is concrete unless it says so
        cls.abstract_class = vars(cls).get("abstract_class", False)
        # Copy the parent's registries, then append this class body's declarations
        cls._rules = cls._rules.copy()
        cls._rules.collect(vars(cls))
        cls._hooks = cls._hooks.copy()
        cls._hooks.collect(vars(cls))

    def __new__(cls, *args: Any, **kwargs: Any) -> Self:
        # Set up lifecycle state here so subclass __init__ needn't call super()
        instance = super().__new__(cls)
        instance._errors = ErrorSet()
        instance._response = _UNSET
        instance._used_raising_entry = False
        instance._entered = False
        return instance

    def __repr__(self) -> str:
        state = "success" if self.success() else f"errors={self._errors.full_messages()!r}"
        return f"<{type(self).__qualname__} {state}>"

    # -------------------------------------------------------------------------
    # Class-level declarations
    # -------------------------------------------------------------------------

    @classmethod
    def is_abstract(cls) -> bool:
        return cls.abstract_class is True

    @classmethod
    def add_validations(cls, *rules: Rule | Iterable[Rule]) -> None:
        """Register rules after the class body, e.g. ``Svc.add_validations(validates(...))``.

        Subclasses defined before this call don't see the new rules.
        """
        cls._rules.collect({"validations": rules})

    @classmethod
    def add_before_call(
        cls, target: str | Callable[[Any], Any], prepend: bool = False
    ) -> None:
        cls._hooks.add(Hook(HookKind.BEFORE, target), prepend=prepend)

    @classmethod
    def add_after_call(
        cls, target: str | Callable[[Any], Any], prepend: bool = False
    ) -> None:
        cls._hooks.add(Hook(HookKind.AFTER, target), prepend=prepend)

    @classmethod
    def config(cls) -> ServiceSettings:
        return configurable.get_config(cls)

    @classmethod
    def configure(cls, **overrides: Any) -> ServiceSettings:
        return configurable.configure(cls, **overrides)

    @classmethod
    def reset_config(cls) -> None:
        configurable.reset_config(cls)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    @classmethod
    def invoke(cls, *args: Any, **kwargs: Any) -> Self:
        """Run the service and return the instance, successful or not.

        Failed validation never raises here; inspect ``success()`` and
        ``errors``. NotImplementedError and exceptions from hooks, rules or
        ``call()`` still propagate.
        """
        return cls._run(args, kwargs, raising=False)

    @classmethod
    def invoke_or_raise(cls, *args: Any, **kwargs: Any) -> Self:
        """Run the service and return the instance only if it succeeded.

        Raises:
            ValidationFailure: Initial (default-phase) validation failed.
            RequestFailure: Request or response validation failed, or an
                after hook added errors. Carries the response if call() ran.
        """
        return cls._run(args, kwargs, raising=True)

    @classmethod
    def _run(cls, args: tuple[Any, ...], kwargs: dict[str, Any], raising: bool) -> Self:
        service = cls(*args, **kwargs)
        service._used_raising_entry = raising
        service._entered = True
        entry = "invoke_or_raise" if raising else "invoke"

        with bound_contextvars(service=cls.__qualname__, entry=entry):
            service._log("service_call.started")

            service._run_phase(Phase.DEFAULT)
            if not service.success():
                return service._halt(Gate.INITIAL)

            cls._hooks.run(service, HookKind.BEFORE)

            service._run_phase(Phase.REQUEST)
            if not service.success():
                return service._halt(Gate.REQUEST)

            result = service.call()
            if not service.is_stream():
                service._set_response(result)

            service._run_phase(Phase.RESPONSE)
            if not service.success():
                return service._halt(Gate.RESPONSE)

            cls._hooks.run(service, HookKind.AFTER)
            if not service.success():
                return service._halt(Gate.FINAL)

            service._log("service_call.completed", success=True)
        return service

    def _halt(self, gate: Gate) -> Self:
        self._log(
            "service_call.gate_failed", gate=gate.value, error_count=len(self._errors)
        )
        if not self._used_raising_entry:
            return self
        if gate is Gate.INITIAL:
            raise ValidationFailure(self._errors)
        raise RequestFailure(self.response, self._errors)

    def _run_phase(self, phase: Phase) -> None:
        type(self)._rules.run(self, phase)

    def _log(self, event: str, **fields: Any) -> None:
        if get_settings().log_invocations:
            logger.debug(event, **fields)

    # -------------------------------------------------------------------------
    # Instance surface
    # -------------------------------------------------------------------------

    @property
    def errors(self) -> ErrorSet:
        return self._errors

    @property
    def response(self) -> Any:
        """What ``call()`` returned, or None if it hasn't run."""
        return None if self._response is _UNSET else self._response

    @property
    def has_response(self) -> bool:
        return self._response is not _UNSET

    @property
    def used_raising_entry(self) -> bool:
        """Whether invoke_or_raise() created this instance. Informational only."""
        return self._used_raising_entry

    def _set_response(self, value: Any) -> None:
        self._response = value

    def is_stream(self) -> bool:
        return isinstance(self, Iterable)

    def success(self) -> bool:
        return self._errors.is_empty()

    def valid(self) -> bool:
        """Whether this instance is eligible to execute.

        Always true once a response is set, whatever the errors say. Before
        that, runs the default-phase rules against a fresh ErrorSet and
        reports whether they passed.

        Once an entry point has started on this instance, its errors are put
        back afterwards, so hooks calling ``valid()`` can't clear lifecycle
        errors. A freshly constructed instance keeps the new entries.
        """
        if self.has_response:
            return True
        original = self._errors
        checked = self._errors = ErrorSet()
        try:
            self._run_phase(Phase.DEFAULT)
        finally:
            if self._entered:
                self._errors = original
        return checked.is_empty()

    def invalid(self) -> bool:
        return not self.valid()

    def call(self) -> Any:
        if type(self).is_abstract():
            return None
        raise NotImplementedError(
            "Subclasses must implement a call method. If this is an abstract "
            "base class, set `abstract_class = True`."
        )
