"""before_call / after_call hooks and the per-class hook registry.

Hooks are zero-argument operations bound to the service instance. They can
read and write instance fields and append to ``self.errors``; they never
receive the lifecycle outcome as a parameter.

Ordering:
    - Hooks of one kind run in registration order
    - Inherited hooks run before hooks declared on the subclass
    - ``prepend=True`` moves a hook to the front of its list

A hook that raises aborts the rest of the lifecycle, including any hooks of
the same kind that have not run yet.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from servicecall.base import ServiceCall

_HOOK_MARKER = "__servicecall_hook_kind__"


class HookKind(str, Enum):
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class Hook:
    """A hook referenced either by method name or by an inline callable.

    Inline callables receive the instance as their only argument.
    """

    kind: HookKind
    target: str | Callable[["ServiceCall"], Any]

    def run(self, instance: "ServiceCall") -> None:
        if isinstance(self.target, str):
            getattr(instance, self.target)()
        else:
            self.target(instance)


def before_call(func: Callable[..., Any]) -> Callable[..., Any]:
    """Mark a method to run after initial validation, before request validation."""
    setattr(func, _HOOK_MARKER, HookKind.BEFORE)
    return func


def after_call(func: Callable[..., Any]) -> Callable[..., Any]:
    """Mark a method to run after response validation has passed."""
    setattr(func, _HOOK_MARKER, HookKind.AFTER)
    return func


@dataclass
class HookRegistry:
    """Hooks of one service class, per kind, in run order."""

    _hooks: dict[HookKind, list[Hook]] = field(
        default_factory=lambda: {kind: [] for kind in HookKind}
    )

    def copy(self) -> "HookRegistry":
        return HookRegistry({kind: list(hooks) for kind, hooks in self._hooks.items()})

    def add(self, hook: Hook, prepend: bool = False) -> None:
        hooks = self._hooks[hook.kind]
        if hook in hooks:
            if not prepend:
                return
            hooks.remove(hook)
        if prepend:
            hooks.insert(0, hook)
        else:
            hooks.append(hook)

    def collect(self, namespace: Mapping[str, Any]) -> None:
        """Register hooks marked in a class body, in definition order."""
        for name, value in namespace.items():
            if callable(value) and hasattr(value, _HOOK_MARKER):
                self.add(Hook(getattr(value, _HOOK_MARKER), name))

    def hooks_for(self, kind: HookKind) -> list[Hook]:
        return list(self._hooks[kind])

    def run(self, instance: "ServiceCall", kind: HookKind) -> None:
        for hook in self._hooks[kind]:
            hook.run(instance)
