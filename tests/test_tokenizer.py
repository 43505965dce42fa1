"""
Tests del tokenizador: clasificación de líneas y errores de sintaxis.
"""

import types

import pytest

from tmsim_converter import (
    AlphabetDecl,
    Blank,
    RuleLine,
    TMSyntaxError,
    classify_line,
    tokenize,
)


class TestRuleLines:
    """Líneas de regla válidas."""

    def test_simple_rule(self):
        line = classify_line("q0(a) -> q1(b)R", 3)
        assert isinstance(line, RuleLine)
        assert line.line_number == 3
        assert (line.source_state, line.read_symbol) == ("q0", "a")
        assert (line.target_state, line.write_symbol, line.direction) == ("q1", "b", "R")

    def test_blank_symbol_is_kept(self):
        """El espacio entre paréntesis es el blanco, no un token vacío."""
        line = classify_line("q0( ) -> q1( )L", 1)
        assert line.read_symbol == " "
        assert line.write_symbol == " "
        assert line.direction == "L"

    def test_wildcard_symbols(self):
        line = classify_line("q1(*) -> q1(*)S", 1)
        assert line.read_symbol == "*"
        assert line.write_symbol == "*"
        assert line.direction == "S"

    @pytest.mark.parametrize("text", [
        "q0(a)->q1(b)R",
        "q0(a)   ->   q1(b)R",
        "   q0(a) -> q1(b)R   ",
        "q0(a)\t->\tq1(b)R",
    ])
    def test_whitespace_variations(self, text):
        line = classify_line(text, 1)
        assert isinstance(line, RuleLine)
        assert line.target_state == "q1"

    def test_alphanumeric_state_names(self):
        line = classify_line("start(1) -> Q42(0)R", 1)
        assert line.source_state == "start"
        assert line.target_state == "Q42"

    def test_parenthesis_as_symbol(self):
        line = classify_line("q0()) -> q1(()R", 1)
        assert line.read_symbol == ")"
        assert line.write_symbol == "("


class TestDeclarations:
    """Declaraciones 'alphabet:' y 'tape:'."""

    def test_alphabet(self):
        line = classify_line("alphabet: (#ab )", 2)
        assert isinstance(line, AlphabetDecl)
        assert line.kind == "alphabet"
        assert line.symbols == "#ab "

    def test_tape_without_space_after_colon(self):
        line = classify_line("tape:(*ab )", 1)
        assert line.kind == "tape"
        assert line.symbols == "*ab "

    def test_only_blank(self):
        line = classify_line("tape: ( )", 1)
        assert line.symbols == " "


class TestBlankLines:

    @pytest.mark.parametrize("text", ["", "   ", "\t", "\r"])
    def test_blank(self, text):
        assert classify_line(text, 7) == Blank(7)


class TestSyntaxErrors:
    """Líneas mal formadas: se informa línea y contenido."""

    @pytest.mark.parametrize("text, reason", [
        ("q0() -> q1(b)R", "vacío"),
        ("q0(ab) -> q1(b)R", "más de un carácter"),
        ("q0(a) -> q1(bc)R", "más de un carácter"),
        ("q0(a -> q1(b)R", "desbalanceados"),
        ("q0(a) -> q1(b)", "falta la dirección"),
        ("q0(a) -> q1(b)X", "dirección inválida"),
        ("q0(a) -> q1(b)r", "dirección inválida"),
        ("q 0(a) -> q1(b)R", "estado inválido"),
        ("q0(a)x -> q1(b)R", "texto inesperado"),
        ("alphabet: ()", "vacía"),
        ("alphabet #ab", "no reconocida"),
        ("tape: *ab", "mal formada"),
        ("hello world", "no reconocida"),
    ])
    def test_reason(self, text, reason):
        with pytest.raises(TMSyntaxError, match=reason) as info:
            classify_line(text, 5)
        assert info.value.line_number == 5
        assert info.value.line == text

    def test_keyword_case_is_literal(self):
        with pytest.raises(TMSyntaxError):
            classify_line("Alphabet: (ab)", 1)


class TestTokenize:
    """tokenize() es perezoso y numera desde 1."""

    def test_is_generator(self, sample_source):
        assert isinstance(tokenize(sample_source), types.GeneratorType)

    def test_line_numbers(self, sample_source):
        lines = list(tokenize(sample_source))
        # el salto de línea final deja una línea en blanco (la 10)
        assert [line.line_number for line in lines] == list(range(1, 11))
        assert isinstance(lines[-1], Blank)
        assert isinstance(lines[2], Blank)
        assert sum(isinstance(line, RuleLine) for line in lines) == 6

    def test_crlf(self):
        lines = list(tokenize("alphabet: (ab )\r\nq0( ) -> q1( )L\r\n"))
        assert lines[0].symbols == "ab "
        assert lines[1].read_symbol == " "

    def test_error_is_raised_lazily(self):
        items = tokenize("q0(a) -> q1(b)R\nbogus\n")
        assert isinstance(next(items), RuleLine)
        with pytest.raises(TMSyntaxError) as info:
            next(items)
        assert info.value.line_number == 2

    def test_form_feed_does_not_shift_line_numbers(self):
        lines = list(tokenize("alphabet: (ab )\n\x0c\nq0(a) -> q1(b)R\n"))
        assert lines[1] == Blank(2)
        assert lines[2].line_number == 3

    def test_unicode_line_separator_is_a_symbol(self):
        lines = list(tokenize("alphabet: (a\u2028 )\nq0(\u2028) -> q1(a)R\n"))
        assert lines[0].symbols == "a\u2028 "
        assert lines[1].read_symbol == "\u2028"

    def test_repeated_arrow(self):
        with pytest.raises(TMSyntaxError, match="más de una flecha"):
            classify_line("q0(a) -> q1(b)R -> q2(c)L", 1)
