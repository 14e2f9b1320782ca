"""Validation rules, phases, and the per-class rule registry.

Rules come in two shapes:
- AttributeRule: one declarative constraint checked against one attribute,
  built with ``validates("name", presence=True, length={"maximum": 40})``
- MethodRule: a method marked with ``@validator(on=...)`` that inspects the
  instance and appends to ``self.errors`` itself

Every rule carries a Phase. A registry runs all rules of one phase in
declaration order (superclass rules first) and never stops at the first
failure. A failing rule only appends to the ErrorSet; an exception raised
inside a rule propagates unchanged.
"""

import re
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Protocol

from pydantic import Field, TypeAdapter, ValidationError

if TYPE_CHECKING:
    from servicecall.base import ServiceCall

Failure = tuple[str, dict[str, Any]]

_RULE_MARKER = "__servicecall_rule_phase__"


class Phase(str, Enum):
    """When a rule runs in the call lifecycle."""

    DEFAULT = "default"
    REQUEST = "request"
    RESPONSE = "response"


# =============================================================================
# Constraints
# =============================================================================


def is_blank(value: Any) -> bool:
    """None, False, whitespace-only strings and empty containers are blank."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Collection):
        return len(value) == 0
    return False


class Constraint(Protocol):
    def failures(self, value: Any) -> list[Failure]: ...


class Presence:
    def failures(self, value: Any) -> list[Failure]:
        return [("blank", {})] if is_blank(value) else []


class Absence:
    def failures(self, value: Any) -> list[Failure]:
        return [] if is_blank(value) else [("present", {})]


# pydantic error type -> (ErrorSet kind, ctx key holding the limit)
_PYDANTIC_KINDS: dict[str, tuple[str, str | None]] = {
    "string_too_short": ("too_short", "min_length"),
    "too_short": ("too_short", "min_length"),
    "string_too_long": ("too_long", "max_length"),
    "too_long": ("too_long", "max_length"),
    "string_pattern_mismatch": ("invalid", None),
    "string_type": ("invalid", None),
    "greater_than": ("greater_than", "gt"),
    "greater_than_equal": ("greater_than_or_equal_to", "ge"),
    "less_than": ("less_than", "lt"),
    "less_than_equal": ("less_than_or_equal_to", "le"),
}


def _pydantic_failures(adapter: TypeAdapter[Any], value: Any) -> list[Failure]:
    """Validate with ``adapter`` and translate its errors into ErrorSet kinds."""
    try:
        adapter.validate_python(value)
    except ValidationError as exc:
        found: list[Failure] = []
        for error in exc.errors():
            kind, ctx_key = _PYDANTIC_KINDS.get(error["type"], ("invalid", None))
            options = {"count": error["ctx"][ctx_key]} if ctx_key else {}
            found.append((kind, options))
        return found
    return []


def _length_adapter(value: Any, **limits: int) -> TypeAdapter[Any]:
    base = str if isinstance(value, str) else list[Any]
    return TypeAdapter(Annotated[base, Field(strict=True, **limits)])


class Length:
    """Length limits checked with pydantic ``min_length`` / ``max_length``.

    Strings are measured as strings; any other sized value (None counts as
    empty) is measured as the list of its items.
    """

    def __init__(
        self, minimum: int | None = None, maximum: int | None = None, is_: int | None = None
    ):
        self.minimum = minimum
        self.maximum = maximum
        self.is_ = is_
        self._limits = {
            key: limit
            for key, limit in (("min_length", minimum), ("max_length", maximum))
            if limit is not None
        }

    def failures(self, value: Any) -> list[Failure]:
        if value is None:
            value = ""
        elif not isinstance(value, str):
            value = list(value)
        found: list[Failure] = []
        if self.is_ is not None:
            exact = _length_adapter(value, min_length=self.is_, max_length=self.is_)
            if _pydantic_failures(exact, value):
                found.append(("wrong_length", {"count": self.is_}))
        if self._limits:
            found.extend(_pydantic_failures(_length_adapter(value, **self._limits), value))
        return found


class Format:
    """Regex check with pydantic's ``pattern`` constraint (unanchored search).

    The pattern is compiled first, so pydantic uses the ``re`` engine and any
    flags on a precompiled pattern apply.
    """

    def __init__(self, pattern: str | re.Pattern[str]):
        self.pattern = re.compile(pattern)
        self._adapter: TypeAdapter[Any] = TypeAdapter(
            Annotated[str, Field(strict=True, pattern=self.pattern)]
        )

    def failures(self, value: Any) -> list[Failure]:
        return [("invalid", {})] if _pydantic_failures(self._adapter, value) else []


@dataclass(frozen=True)
class Inclusion:
    choices: Collection[Any]

    def failures(self, value: Any) -> list[Failure]:
        return [] if value in self.choices else [("inclusion", {})]


@dataclass(frozen=True)
class Exclusion:
    choices: Collection[Any]

    def failures(self, value: Any) -> list[Failure]:
        return [("exclusion", {})] if value in self.choices else []


class TypeCheck:
    """Strict type check delegated to a pydantic TypeAdapter."""

    def __init__(self, annotation: Any):
        self.annotation = annotation
        self._adapter: TypeAdapter[Any] = TypeAdapter(annotation)

    def failures(self, value: Any) -> list[Failure]:
        try:
            self._adapter.validate_python(value, strict=True)
        except ValidationError as exc:
            msg = exc.errors()[0]["msg"]
            return [("wrong_type", {"detail": msg[:1].lower() + msg[1:]})]
        return []


# numericality option -> pydantic Field constraint
_FIELD_BOUNDS: dict[str, str] = {
    "greater_than": "gt",
    "greater_than_or_equal_to": "ge",
    "less_than": "lt",
    "less_than_or_equal_to": "le",
}

# pydantic has no equality constraints
_EQUALITY_BOUNDS: dict[str, Callable[[float, float], bool]] = {
    "equal_to": lambda v, c: v == c,
    "other_than": lambda v, c: v != c,
}


class Numericality:
    """Numeric check; strings such as ``"12"`` are parsed the pydantic way.

    Ordering bounds become ``gt`` / ``ge`` / ``lt`` / ``le`` constraints on a
    pydantic TypeAdapter; ``equal_to`` and ``other_than`` are compared directly.
    """

    def __init__(self, only_integer: bool = False, **bounds: float):
        unknown = set(bounds) - set(_FIELD_BOUNDS) - set(_EQUALITY_BOUNDS)
        if unknown:
            raise TypeError(f"Unknown numericality options: {sorted(unknown)}")
        self.only_integer = only_integer
        self.bounds = bounds
        number_type = int if only_integer else float
        self._parser: TypeAdapter[Any] = TypeAdapter(number_type)
        self._range: TypeAdapter[Any] = TypeAdapter(
            Annotated[
                number_type,
                Field(
                    **{
                        _FIELD_BOUNDS[name]: count
                        for name, count in bounds.items()
                        if name in _FIELD_BOUNDS
                    }
                ),
            ]
        )

    def failures(self, value: Any) -> list[Failure]:
        if isinstance(value, bool):
            return [("not_a_number", {})]
        try:
            number = self._parser.validate_python(value)
        except ValidationError:
            return [("not_a_number", {})]
        found = _pydantic_failures(self._range, number)
        found.extend(
            (name, {"count": count})
            for name, count in self.bounds.items()
            if name in _EQUALITY_BOUNDS and not _EQUALITY_BOUNDS[name](number, count)
        )
        return found


def _build_constraint(name: str, option: Any) -> Constraint:
    if name == "presence":
        return Presence()
    if name == "absence":
        return Absence()
    if name == "length":
        opts = dict(option)
        if "is" in opts:
            opts["is_"] = opts.pop("is")
        return Length(**opts)
    if name == "format":
        return Format(option)
    if name == "inclusion":
        return Inclusion(option)
    if name == "exclusion":
        return Exclusion(option)
    if name == "type":
        return TypeCheck(option)
    if name == "numericality":
        return Numericality(**option) if isinstance(option, Mapping) else Numericality()
    raise TypeError(f"Unknown validation constraint: {name!r}")


# =============================================================================
# Rules
# =============================================================================


@dataclass(frozen=True)
class AttributeRule:
    attribute: str
    constraint: Constraint
    phase: Phase = Phase.DEFAULT
    allow_none: bool = False
    message: str | None = None

    def run(self, instance: "ServiceCall") -> None:
        value = getattr(instance, self.attribute)
        if self.allow_none and value is None:
            return
        for kind, options in self.constraint.failures(value):
            instance.errors.add(self.attribute, kind, message=self.message, **options)


@dataclass(frozen=True)
class MethodRule:
    """Calls ``instance.<name>()``, so subclass overrides are honoured."""

    name: str
    phase: Phase = Phase.DEFAULT

    def run(self, instance: "ServiceCall") -> None:
        getattr(instance, self.name)()


Rule = AttributeRule | MethodRule


def validates(
    *attributes: str,
    on: Phase | str = Phase.DEFAULT,
    allow_none: bool = False,
    message: str | None = None,
    **constraints: Any,
) -> tuple[AttributeRule, ...]:
    """Declare constraints for one or more attributes.

    Returns one rule per (attribute, constraint) pair, attribute-major. Put
    the result in a service's ``validations`` list.

    Example:
        class CreateUser(ServiceCall):
            validations = [
                validates("email", presence=True, format=r"@"),
                validates("age", allow_none=True, numericality={"greater_than": 0}),
            ]
    """
    if not attributes:
        raise TypeError("validates() needs at least one attribute")
    if not constraints:
        raise TypeError("validates() needs at least one constraint")
    phase = Phase(on)
    built = [
        _build_constraint(name, option)
        for name, option in constraints.items()
        if option is not False and option is not None
    ]
    return tuple(
        AttributeRule(attr, constraint, phase, allow_none, message)
        for attr in attributes
        for constraint in built
    )


def validator(
    func: Callable[..., Any] | None = None, *, on: Phase | str = Phase.DEFAULT
) -> Any:
    """Mark a method as a validation rule for the given phase.

    Usable bare (``@validator``) or with a phase (``@validator(on="response")``).
    """
    phase = Phase(on)

    def mark(fn: Callable[..., Any]) -> Callable[..., Any]:
        setattr(fn, _RULE_MARKER, phase)
        return fn

    if func is not None:
        return mark(func)
    return mark


def _flatten(items: Iterable[Any]) -> Iterable[Rule]:
    for item in items:
        if isinstance(item, (AttributeRule, MethodRule)):
            yield item
        elif isinstance(item, (str, bytes)):
            raise TypeError(f"Not a validation rule: {item!r}")
        else:
            yield from _flatten(item)


# =============================================================================
# Registry
# =============================================================================


@dataclass
class RuleRegistry:
    """Rules of one service class, grouped by phase in declaration order."""

    _rules: dict[Phase, list[Rule]] = field(
        default_factory=lambda: {phase: [] for phase in Phase}
    )

    def copy(self) -> "RuleRegistry":
        return RuleRegistry({phase: list(rules) for phase, rules in self._rules.items()})

    def add(self, rule: Rule) -> None:
        rules = self._rules[rule.phase]
        if isinstance(rule, MethodRule) and rule in rules:
            return
        rules.append(rule)

    def collect(self, namespace: Mapping[str, Any]) -> None:
        """Register rules found in a class body, in definition order."""
        for name, value in namespace.items():
            if name == "validations":
                for rule in _flatten(value):
                    self.add(rule)
            elif callable(value) and hasattr(value, _RULE_MARKER):
                self.add(MethodRule(name, getattr(value, _RULE_MARKER)))

    def rules_for(self, phase: Phase) -> list[Rule]:
        return list(self._rules[phase])

    def run(self, instance: "ServiceCall", *phases: Phase) -> None:
        for phase in phases:
            for rule in self._rules[phase]:
                rule.run(instance)
