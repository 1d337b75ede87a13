from __future__ import annotations

import pytest

from chunkpatch.materialize import SOURCE_ATTR, FunctionMaterializer, MaterializationError, TextMaterializer

SCALE = 3


def ab(x):
    return x * SCALE


class TestTextMaterializer:
    def test_source_of_text_and_bytes(self) -> None:
        m = TextMaterializer()
        assert m.source("abc") == "abc"
        assert m.source("é".encode("utf-8")) == "é"

    def test_source_rejects_other_types(self) -> None:
        with pytest.raises(MaterializationError, match="Expected text unit"):
            TextMaterializer().source(12)

    def test_source_rejects_invalid_utf8(self) -> None:
        with pytest.raises(MaterializationError, match="not UTF-8"):
            TextMaterializer().source(b"\xff\xfe")

    def test_materialize_keeps_original_type(self) -> None:
        m = TextMaterializer()
        assert m.materialize("1", "new", "old") == "new"
        assert m.materialize("1", "new", b"old") == b"new"

    def test_validator_failure_becomes_materialization_error(self) -> None:
        def validator(text):
            raise ValueError("bad chunk")

        with pytest.raises(MaterializationError, match="bad chunk"):
            TextMaterializer(validator=validator).materialize("1", "x", "y")


class TestFunctionMaterializer:
    def test_source_from_inspect(self) -> None:
        assert FunctionMaterializer().source(ab).startswith("def ab(x):")

    def test_rewritten_function_keeps_module_globals(self) -> None:
        m = FunctionMaterializer()
        text = m.source(ab).replace("x * SCALE", "x * SCALE + 1")

        patched = m.materialize("ab", text, ab)

        assert patched(2) == 7
        assert m.source(patched) == text
        assert getattr(patched, SOURCE_ATTR) == text

    def test_syntax_error(self) -> None:
        with pytest.raises(MaterializationError, match="SyntaxError"):
            FunctionMaterializer().materialize("ab", "def ab(:\n", ab)

    def test_missing_function(self) -> None:
        with pytest.raises(MaterializationError, match="does not define ab"):
            FunctionMaterializer().materialize("ab", "def other(x):\n    return x\n", ab)

    def test_exec_error(self) -> None:
        with pytest.raises(MaterializationError, match="ZeroDivisionError"):
            FunctionMaterializer().materialize("ab", "1 / 0\n", ab)

    def test_non_function_unit(self) -> None:
        with pytest.raises(MaterializationError, match="Expected a function unit"):
            FunctionMaterializer().source(len)

    def test_renamed_function_is_rejected_even_when_alone(self) -> None:
        text = "def renamed(x):\n    return x\n"
        with pytest.raises(MaterializationError, match="does not define ab"):
            FunctionMaterializer().materialize("ab", text, ab)

    def test_lambda_falls_back_to_single_function(self) -> None:
        patched = FunctionMaterializer().materialize("f", "def f(x):\n    return x + 1\n", lambda x: x)
        assert patched(1) == 2

    def test_nul_bytes(self) -> None:
        with pytest.raises(MaterializationError):
            FunctionMaterializer().materialize("ab", "def ab(x):\n    return '\0'\n", ab)
