"""
Interception of the host's chunk registration primitive.

The host binds its chunk loader through a general-purpose primitive
(think functools.partial) that it also uses for many unrelated calls.
The hook replaces that primitive on its owner, recognises registration
calls purely by their shape, and hands every batch the wrapped loader
later receives to the engine before the loader sees it. Calls it does
not recognise go to the original primitive untouched.

State machine:

    UNINSTALLED --install()--> INTERCEPTING --final registration / restore()--> RESTORED
"""

from __future__ import annotations

import functools
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .engine import PatchEngine


class CallKind(str, Enum):
    PASS_THROUGH = "pass_through"
    REGISTRATION = "registration"
    # Registration after which the original primitive is put back.
    FINAL_REGISTRATION = "final_registration"


class HookState(str, Enum):
    UNINSTALLED = "uninstalled"
    INTERCEPTING = "intercepting"
    RESTORED = "restored"


@dataclass(frozen=True)
class CallShape:
    target: Any
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


MAX_TARGET_NAME_LENGTH = 2


def classify_call(shape: CallShape) -> CallKind:
    """
    Registration calls look like primitive(<short-named fn>, None, 0 | fn).

    Anything else, including calls whose shape merely comes close, is
    passed through.
    """
    name = getattr(shape.target, "__name__", None)
    if not isinstance(name, str) or len(name) > MAX_TARGET_NAME_LENGTH:
        return CallKind.PASS_THROUGH
    if shape.kwargs or len(shape.args) != 2 or shape.args[0] is not None:
        return CallKind.PASS_THROUGH

    second = shape.args[1]
    if callable(second):
        return CallKind.FINAL_REGISTRATION
    if type(second) is int and second == 0:
        return CallKind.REGISTRATION
    return CallKind.PASS_THROUGH


def extract_units(call_args: tuple[Any, ...]) -> MutableMapping | None:
    """Batches arrive as the last positional argument: (chunk_ids, {id: chunk})."""
    if not call_args:
        return None
    item = call_args[-1]
    if isinstance(item, (tuple, list)) and len(item) == 2 and isinstance(item[1], MutableMapping):
        return item[1]
    return None


class HookError(Exception):
    """Invalid hook state transition."""


class InterceptionHook:
    def __init__(
        self,
        engine: "PatchEngine",
        owner: Any,
        attribute: str,
        *,
        classifier: Callable[[CallShape], CallKind] = classify_call,
        extract_units: Callable[[tuple[Any, ...]], MutableMapping | None] = extract_units,
    ):
        self.engine = engine
        self.owner = owner
        self.attribute = attribute
        self.classifier = classifier
        self.extract_units = extract_units
        self.state = HookState.UNINSTALLED
        self.original: Callable[..., Any] | None = None
        self.registrations = 0

    @property
    def log(self):
        return self.engine.log

    def install(self) -> None:
        if self.state is not HookState.UNINSTALLED:
            raise HookError(f"Cannot install hook in state {self.state.value}")
        self.original = getattr(self.owner, self.attribute)
        setattr(self.owner, self.attribute, self._intercept)
        self.state = HookState.INTERCEPTING

    def restore(self) -> None:
        if self.state is not HookState.INTERCEPTING:
            return
        setattr(self.owner, self.attribute, self.original)
        self.state = HookState.RESTORED
        self.log.info(f"Restored {self.attribute}()")

    def _intercept(self, *args: Any, **kwargs: Any) -> Any:
        original = self.original
        if original is None:
            raise HookError(f"{self.attribute}() intercepted before install()")

        if not args:
            return original(*args, **kwargs)
        target, rest = args[0], args[1:]

        kind = self.classifier(CallShape(target, rest, kwargs))
        if kind is CallKind.PASS_THROUGH:
            return original(*args, **kwargs)

        self.registrations += 1
        try:
            self.engine.start()
        except Exception as e:
            # Without a started engine the host gets its primitive back untouched.
            self.log.error("Engine start raised", error=f"{type(e).__name__}: {e}")
            self.restore()
            return original(*args, **kwargs)

        if kind is CallKind.FINAL_REGISTRATION:
            self.restore()

        return original(self.wrap(target), *rest, **kwargs)

    def wrap(self, target: Callable[..., Any]) -> Callable[..., Any]:
        """Return a loader that patches each batch in place, then calls `target`."""

        @functools.wraps(target)
        def patched_loader(*call_args: Any, **call_kwargs: Any) -> Any:
            units = self.extract_units(call_args)
            if units is not None:
                try:
                    self.engine.patch(units)
                except Exception as e:
                    # The host must still load its chunks, patched or not.
                    self.log.error("Patch pass raised", error=f"{type(e).__name__}: {e}")
            return target(*call_args, **call_kwargs)

        return patched_loader
