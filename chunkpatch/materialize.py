"""
Turning patched text back into something the host can run.

The engine only ever sees text. A Materializer is the integration
layer's half of the contract: it reads a unit's source text and builds
a replacement unit from rewritten text, raising MaterializationError
when the rewrite is not a valid unit.
"""

from __future__ import annotations

import inspect
import textwrap
import types
from typing import Any, Callable, Protocol

SOURCE_ATTR = "__chunk_source__"


class MaterializationError(Exception):
    """Rewritten text could not be turned into an executable unit."""


class Materializer(Protocol):
    def source(self, unit: Any) -> str: ...

    def materialize(self, unit_id: str, text: str, original: Any) -> Any: ...


class TextMaterializer:
    """
    Units are their own source text (e.g. chunk files served to a browser).

    An optional validator can reject rewritten text by raising; any
    exception it raises is reported as a MaterializationError.
    """

    def __init__(self, validator: Callable[[str], None] | None = None):
        self.validator = validator

    def source(self, unit: Any) -> str:
        if isinstance(unit, bytes):
            try:
                return unit.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MaterializationError(f"Unit is not UTF-8 text: {e}") from e
        if not isinstance(unit, str):
            raise MaterializationError(f"Expected text unit, got {type(unit).__name__}")
        return unit

    def materialize(self, unit_id: str, text: str, original: Any) -> Any:
        if self.validator is not None:
            try:
                self.validator(text)
            except Exception as e:
                raise MaterializationError(str(e)) from e
        if isinstance(original, bytes):
            return text.encode("utf-8")
        return text


class FunctionMaterializer:
    """
    Units are Python functions (module factories registered by a host).

    Source comes from the __chunk_source__ attribute when a previous pass
    produced the function, else from inspect.getsource(). Materialized
    functions are compiled against the original function's globals, so
    module-level names keep resolving; closures are not preserved.
    """

    def source(self, unit: Any) -> str:
        cached = getattr(unit, SOURCE_ATTR, None)
        if isinstance(cached, str):
            return cached
        if not isinstance(unit, types.FunctionType):
            raise MaterializationError(f"Expected a function unit, got {type(unit).__name__}")
        try:
            return textwrap.dedent(inspect.getsource(unit))
        except (OSError, TypeError) as e:
            raise MaterializationError(f"Source unavailable for {unit.__qualname__}: {e}") from e

    def materialize(self, unit_id: str, text: str, original: Any) -> Any:
        try:
            code = compile(text, f"<chunk {unit_id}>", "exec")
        except SyntaxError as e:
            raise MaterializationError(f"SyntaxError: {e.msg} (line {e.lineno})") from e
        except ValueError as e:
            # Source containing NUL bytes.
            raise MaterializationError(f"ValueError: {e}") from e

        module_globals = getattr(original, "__globals__", None)
        if module_globals is None:
            module_globals = {"__name__": f"chunk_{unit_id}"}
        namespace: dict[str, Any] = {}
        try:
            exec(code, module_globals, namespace)
        except Exception as e:
            raise MaterializationError(f"{type(e).__name__}: {e}") from e

        name = getattr(original, "__name__", None)
        if isinstance(name, str) and name.isidentifier():
            # A named original must come back under the same name.
            fn = namespace.get(name)
            if fn is None:
                raise MaterializationError(f"Patched chunk {unit_id} does not define {name}")
        else:
            candidates = [v for v in namespace.values() if isinstance(v, types.FunctionType)]
            if len(candidates) != 1:
                raise MaterializationError(f"Patched chunk {unit_id} does not define {name or 'a function'}")
            fn = candidates[0]
        if not callable(fn):
            raise MaterializationError(f"Patched chunk {unit_id} defines {name} but it is not callable")

        setattr(fn, SOURCE_ATTR, text)
        return fn
