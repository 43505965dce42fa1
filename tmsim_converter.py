#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Conversor de descripciones de Máquinas de Turing (.tmsim) a JSON / YAML.

Formato de entrada esperado:
---------------------------------------
alphabet: (#ab )
tape: (*ab )
q0(a) -> q0(a)R
q0(b) -> q0(b)R
q0( ) -> q1( )L
q1(a) -> q1(#)L
q1(*) -> q1(*)L
q1( ) -> q2( )R
---------------------------------------

Notas:
- Cada regla es ESTADO(SIMBOLO) -> ESTADO(SIMBOLO)DIRECCION, con DIRECCION
  en {L, R, S} (mayúsculas, tal cual).
- El espacio dentro de los paréntesis es el símbolo blanco; NO se recorta.
- '*' al leer es comodín: aplica a cualquier símbolo sin regla propia para
  ese estado. '*' al escribir significa "reescribir el símbolo leído".
- 'alphabet:' y 'tape:' deben aparecer exactamente una vez, en cualquier
  posición del archivo. El blanco pertenece siempre a ambos.
- Los estados no se declaran: se infieren de las reglas. Un estado que solo
  aparece como destino se considera terminal.

Salida:
- Documento con 'initial_state', 'rules', 'alphabet' y 'tape_alphabet'.
- Sin -o se imprime formateado por stdout; con -o se escribe en el archivo.
- Cualquier error de sintaxis o validación aborta la conversión: no se emite
  documento y el código de salida es distinto de cero.
"""
from __future__ import annotations
import argparse
import json
import logging
import re
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

# Intentamos importar PyYAML. Si no está, avisamos al usuario.
try:
    import yaml  # PyYAML
except ImportError:
    print("ERROR: No se pudo importar 'yaml'. Instala PyYAML con:", file=sys.stderr)
    print("       pip install pyyaml", file=sys.stderr)
    raise

logger = logging.getLogger(__name__)

BLANK = ' '     # símbolo blanco
WILDCARD = '*'  # comodín de lectura / escritura identidad

# Códigos de salida de la CLI que no dependen del núcleo
EXIT_OK = 0
EXIT_NO_SOURCE = 1
EXIT_UNREADABLE = 2
EXIT_WRITE_FAILED = 8

# ---------------------------------------------------------------------------
# Errores
# ---------------------------------------------------------------------------
class ConversionError(ValueError):
    """Error base: la descripción no se puede convertir."""
    exit_code = 1

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.line = line
        # args = argumentos del constructor (los usa pickle)
        self.args = (message, line_number, line)

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"línea {self.line_number}: {self.message}: {self.line!r}"


class TMSyntaxError(ConversionError):
    """Una línea no respeta la gramática de reglas ni la de declaraciones."""
    exit_code = 3


class MissingDeclarationError(ConversionError):
    exit_code = 4

    def __init__(self, kind: str):
        super().__init__(f"falta la declaración '{kind}:'")
        self.kind = kind
        self.args = (kind,)


class DuplicateDeclarationError(ConversionError):
    exit_code = 5

    def __init__(self, kind: str, first_line: int, line_number: int, line: str):
        super().__init__(
            f"declaración '{kind}:' repetida (ya declarada en la línea {first_line})",
            line_number,
            line,
        )
        self.kind = kind
        self.first_line = first_line
        self.args = (kind, first_line, line_number, line)


class UnknownSymbolError(ConversionError):
    exit_code = 6

    def __init__(self, symbol: str, line_number: int, line: str, where: str = "la regla"):
        super().__init__(f"símbolo {symbol!r} de {where} no pertenece a 'alphabet:'", line_number, line)
        self.symbol = symbol
        self.args = (symbol, line_number, line, where)


class ConflictingRuleError(ConversionError):
    exit_code = 7

    def __init__(self, first: "Rule", second: "Rule", line: str):
        super().__init__(
            f"regla en conflicto para ({first.source_state}, {first.read_symbol!r}); "
            f"ya definida en la línea {first.line_number}",
            second.line_number,
            line,
        )
        self.first_line = first.line_number
        self.second_line = second.line_number
        self.args = (first, second, line)

# ---------------------------------------------------------------------------
# Tokenizador: clasificación de líneas
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RuleLine:
    """Tokens crudos de una regla, tal como aparecen en el fuente."""
    line_number: int
    source_state: str
    read_symbol: str
    target_state: str
    write_symbol: str
    direction: str   # 'L' | 'R' | 'S'
    text: str


@dataclass(frozen=True)
class AlphabetDecl:
    line_number: int
    kind: str        # 'alphabet' | 'tape'
    symbols: str
    text: str


@dataclass(frozen=True)
class Blank:
    line_number: int


ClassifiedLine = Union[RuleLine, AlphabetDecl, Blank]

STATE_PATTERN = r"[A-Za-z0-9]+"
RULE_RE = re.compile(
    rf"^(?P<source>{STATE_PATTERN})\((?P<read>.)\)\s*->\s*"
    rf"(?P<target>{STATE_PATTERN})\((?P<write>.)\)(?P<direction>[LRS])$"
)
DECL_RE = re.compile(r"^(?P<kind>alphabet|tape):\s*\((?P<symbols>.+)\)$")
DECL_KEYWORD_RE = re.compile(r"^(alphabet|tape)\s*:")
# Un lado de la flecha: ESTADO(SIMBOLO)RESTO. '.*' es voraz a propósito,
# así ')' también puede ser símbolo.
SIDE_RE = re.compile(r"^(?P<state>[^(]*)\((?P<symbol>.*)\)(?P<tail>.*)$")


def _diagnose_side(side: str, label: str, expect_direction: bool) -> Optional[str]:
    """Devuelve el motivo por el que un lado de la regla es inválido (o None)."""
    m = SIDE_RE.match(side)
    if m is None:
        return f"paréntesis desbalanceados en el {label}"
    if not re.fullmatch(STATE_PATTERN, m.group("state")):
        return f"nombre de estado inválido en el {label}: {m.group('state')!r}"
    symbol = m.group("symbol")
    if not symbol:
        return f"símbolo vacío en el {label}"
    if len(symbol) > 1:
        return f"símbolo de más de un carácter en el {label}: {symbol!r}"
    tail = m.group("tail")
    if expect_direction:
        if not tail:
            return "falta la dirección (L, R o S)"
        if tail not in ("L", "R", "S"):
            return f"dirección inválida {tail!r}; se esperaba L, R o S"
    elif tail:
        return f"texto inesperado tras el símbolo en el {label}: {tail!r}"
    return None


def _diagnose(text: str) -> str:
    """Explica por qué una línea no blanca no encaja en ninguna gramática."""
    if text.count("->") > 1:
        return "más de una flecha '->' en la misma regla"
    if "->" in text:
        left, right = text.split("->", 1)
        reason = (_diagnose_side(left.rstrip(), "origen", expect_direction=False)
                  or _diagnose_side(right.lstrip(), "destino", expect_direction=True))
        return reason or "regla mal formada"
    m = DECL_KEYWORD_RE.match(text)
    if m:
        if text.endswith("()"):
            return f"declaración '{m.group(1)}:' vacía"
        return f"declaración mal formada; se esperaba '{m.group(1)}: (SIMBOLOS)'"
    return "línea no reconocida (ni regla ni declaración)"


def classify_line(raw: str, line_number: int) -> ClassifiedLine:
    """Clasifica UNA línea del fuente. Lanza TMSyntaxError si no es válida."""
    # Solo se recortan los extremos; el interior de los paréntesis se respeta.
    text = raw.strip()
    if not text:
        return Blank(line_number)

    m = RULE_RE.match(text)
    if m:
        return RuleLine(
            line_number=line_number,
            source_state=m.group("source"),
            read_symbol=m.group("read"),
            target_state=m.group("target"),
            write_symbol=m.group("write"),
            direction=m.group("direction"),
            text=text,
        )

    m = DECL_RE.match(text)
    if m:
        return AlphabetDecl(line_number, m.group("kind"), m.group("symbols"), text)

    raise TMSyntaxError(_diagnose(text), line_number, text)


def tokenize(text: str) -> Iterator[ClassifiedLine]:
    """Recorre el fuente línea a línea (perezoso, una sola pasada)."""
    for line_number, raw in enumerate(text.split("\n"), start=1):
        item = classify_line(raw, line_number)
        logger.debug("línea %d: %s", line_number, type(item).__name__)
        yield item

# ---------------------------------------------------------------------------
# Modelo: reglas, tabla de transiciones y descripción de la máquina
# ---------------------------------------------------------------------------
class Direction(Enum):
    LEFT = "Left"
    RIGHT = "Right"
    STAY = "Stay"

    @classmethod
    def from_letter(cls, letter: str) -> "Direction":
        try:
            return _DIRECTION_LETTERS[letter]
        except KeyError:
            raise ValueError(f"Movimiento inválido: {letter!r}") from None


_DIRECTION_LETTERS = {"L": Direction.LEFT, "R": Direction.RIGHT, "S": Direction.STAY}


@dataclass(frozen=True)
class Rule:
    """Una transición: (source_state, read_symbol) -> (target_state, write_symbol, direction)."""
    source_state: str
    read_symbol: str
    target_state: str
    write_symbol: str
    direction: Direction
    # La línea de origen no forma parte de la identidad de la regla
    line_number: int = field(default=0, compare=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source_state, self.read_symbol)

    @property
    def is_fallback(self) -> bool:
        return self.read_symbol == WILDCARD

    def written(self, symbol: str) -> str:
        """Símbolo que se escribe al leer `symbol` ('*' = reescribir lo leído)."""
        return symbol if self.write_symbol == WILDCARD else self.write_symbol

    def to_dict(self) -> Dict[str, str]:
        return {
            "source_state": self.source_state,
            "read_symbol": self.read_symbol,
            "target_state": self.target_state,
            "write_symbol": self.write_symbol,
            "direction": self.direction.value,
        }


class TransitionTable(Mapping):
    """
    Tabla de transiciones de solo lectura: (state, symbol | '*') -> Rule.
    Las claves ya llegan únicas desde build_machine().
    """
    def __init__(self, rules: Iterable[Rule]):
        self._delta: Dict[Tuple[str, str], Rule] = {rule.key: rule for rule in rules}

    def __getitem__(self, key: Tuple[str, str]) -> Rule:
        return self._delta[key]

    def __iter__(self):
        return iter(self._delta)

    def __len__(self) -> int:
        return len(self._delta)

    def lookup(self, state: str, symbol: str) -> Optional[Rule]:
        """
        Busca la regla para (state, symbol):
        - primero la clave exacta,
        - si no existe, la regla comodín (state, '*') del mismo estado,
        - si tampoco, None (la máquina se detendría).
        """
        rule = self._delta.get((state, symbol))
        if rule is None:
            rule = self._delta.get((state, WILDCARD))
        return rule


@dataclass(frozen=True)
class MachineDescription:
    """Resultado final de la conversión. Inmutable una vez construido."""
    rules: Tuple[Rule, ...]
    alphabet: Tuple[str, ...]
    tape_alphabet: Tuple[str, ...]
    initial_state: Optional[str] = None

    @cached_property
    def states(self) -> Tuple[str, ...]:
        """Estados inferidos de las reglas, en orden de aparición."""
        seen: Dict[str, None] = {}
        for rule in self.rules:
            seen.setdefault(rule.source_state)
            seen.setdefault(rule.target_state)
        return tuple(seen)

    @cached_property
    def terminal_states(self) -> Tuple[str, ...]:
        sources = {rule.source_state for rule in self.rules}
        return tuple(s for s in self.states if s not in sources)

    @cached_property
    def table(self) -> TransitionTable:
        return TransitionTable(self.rules)

    def to_document(self) -> Dict[str, object]:
        """Valor estructurado que consume el serializador (JSON/YAML)."""
        return {
            "initial_state": self.initial_state,
            "rules": [rule.to_dict() for rule in self.rules],
            "alphabet": list(self.alphabet),
            "tape_alphabet": list(self.tape_alphabet),
        }

# ---------------------------------------------------------------------------
# Construcción y validación
# ---------------------------------------------------------------------------
def _symbols_of(decl: AlphabetDecl) -> Tuple[str, ...]:
    """Símbolos de una declaración en orden de aparición, sin repetidos, con blanco."""
    symbols: Dict[str, None] = {}
    for ch in decl.symbols:
        if ch in symbols:
            logger.warning("línea %d: símbolo %r repetido en '%s:'", decl.line_number, ch, decl.kind)
        symbols.setdefault(ch)
    if BLANK not in symbols:
        logger.debug("'%s:' sin blanco explícito; se añade", decl.kind)
        symbols.setdefault(BLANK)
    return tuple(symbols)


def build_machine(lines: Iterable[ClassifiedLine]) -> MachineDescription:
    """
    Construye la MachineDescription a partir de las líneas clasificadas.
    Valida declaraciones, pertenencia de símbolos al alfabeto y conflictos
    deterministas. Cualquier fallo lanza una ConversionError.
    """
    rule_lines: List[RuleLine] = []
    declarations: Dict[str, AlphabetDecl] = {}

    for item in lines:
        if isinstance(item, Blank):
            continue
        if isinstance(item, AlphabetDecl):
            previous = declarations.get(item.kind)
            if previous is not None:
                raise DuplicateDeclarationError(item.kind, previous.line_number, item.line_number, item.text)
            declarations[item.kind] = item
        else:
            rule_lines.append(item)

    for kind in ("alphabet", "tape"):
        if kind not in declarations:
            raise MissingDeclarationError(kind)

    alphabet = _symbols_of(declarations["alphabet"])
    tape_alphabet = _symbols_of(declarations["tape"])
    known = frozenset(alphabet)

    tape_decl = declarations["tape"]
    for symbol in tape_alphabet:
        if symbol != WILDCARD and symbol not in known:
            raise UnknownSymbolError(symbol, tape_decl.line_number, tape_decl.text, where="'tape:'")

    # Tabla de control: (state, read) -> primera regla vista con esa clave
    seen: Dict[Tuple[str, str], Rule] = {}
    rules: List[Rule] = []
    for line in rule_lines:
        for symbol in (line.read_symbol, line.write_symbol):
            if symbol != WILDCARD and symbol not in known:
                raise UnknownSymbolError(symbol, line.line_number, line.text)

        rule = Rule(
            source_state=line.source_state,
            read_symbol=line.read_symbol,
            target_state=line.target_state,
            write_symbol=line.write_symbol,
            direction=Direction.from_letter(line.direction),
            line_number=line.line_number,
        )
        previous = seen.get(rule.key)
        if previous is not None:
            if previous == rule:
                logger.warning("línea %d: regla idéntica a la de la línea %d; se ignora",
                               rule.line_number, previous.line_number)
                continue
            raise ConflictingRuleError(previous, rule, line.text)
        seen[rule.key] = rule
        rules.append(rule)

    machine = MachineDescription(
        rules=tuple(rules),
        alphabet=alphabet,
        tape_alphabet=tape_alphabet,
        initial_state=rules[0].source_state if rules else None,
    )
    logger.info("%d regla(s), %d estado(s), terminales: %s",
                len(machine.rules), len(machine.states), ", ".join(machine.terminal_states) or "-")
    return machine


def convert(text: str) -> MachineDescription:
    """Función pura: texto fuente -> MachineDescription (o ConversionError)."""
    return build_machine(tokenize(text))

# ---------------------------------------------------------------------------
# Serialización del documento
# ---------------------------------------------------------------------------
FORMATS = ("json", "yaml")


def dump_document(machine: MachineDescription, fmt: str = "json", pretty: bool = True, indent: int = 2) -> str:
    """Codifica el documento de la máquina como texto JSON o YAML."""
    document = machine.to_document()
    if fmt == "json":
        if pretty:
            return json.dumps(document, ensure_ascii=False, indent=indent)
        return json.dumps(document, ensure_ascii=False, separators=(",", ":"))
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True, default_flow_style=False)
    raise ValueError(f"Formato de salida desconocido: {fmt!r}")

# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tmsim-converter",
        description="Convierte la descripción legible de una Máquina de Turing en JSON (o YAML).",
    )
    ap.add_argument("source", help="Archivo .tmsim de entrada")
    ap.add_argument("-o", "--out", help="Archivo de salida (por defecto, stdout)")
    ap.add_argument("-f", "--format", choices=FORMATS, default="json", help="Formato de salida")
    ap.add_argument("--pretty", action="store_true", help="Formatear también la salida a archivo")
    ap.add_argument("--indent", type=int, default=2, help="Sangría del JSON formateado")
    ap.add_argument("--check", action="store_true", help="Solo validar; no emitir documento")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="Más detalle en stderr (-v, -vv)")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(format="%(levelname)s: %(message)s", stream=sys.stderr)
    logger.setLevel(level)

    source = Path(args.source)
    if not source.exists():
        print(f"ERROR: El archivo especificado no existe: {source}", file=sys.stderr)
        return EXIT_NO_SOURCE
    try:
        text = source.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        print(f"ERROR: No se pudo leer el archivo. Motivo: {e}", file=sys.stderr)
        return EXIT_UNREADABLE

    try:
        machine = convert(text)
    except ConversionError as e:
        print(f"ERROR: {source}: {e}", file=sys.stderr)
        return e.exit_code

    if args.check:
        logger.info("%s: descripción válida", source)
        return EXIT_OK

    if args.out is None:
        print(dump_document(machine, args.format, pretty=True, indent=args.indent))
        return EXIT_OK

    output = dump_document(machine, args.format, pretty=args.pretty, indent=args.indent)
    try:
        Path(args.out).write_text(output, encoding="utf-8")
    except OSError as e:
        print(f"ERROR: No se pudo guardar la salida. Motivo: {e}", file=sys.stderr)
        return EXIT_WRITE_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
