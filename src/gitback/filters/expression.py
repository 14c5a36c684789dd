"""A small expression language for repository filter rules.

Rules are written in a tengo-compatible subset::

    r := !owner || size > 600
    big := size > 10000; r := !big && visibility == 0

A program is a sequence of assignments separated by newlines or ``;``.
Expressions support integer, string and boolean literals, ``! -`` unary
operators, arithmetic, comparisons, short-circuiting ``&& ||``, the
``cond ? a : b`` conditional and a fixed set of builtin functions.

Programs are parsed into a tree once and evaluated by walking it, so
nothing in a rule can reach Python objects other than the values bound
by the caller.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, NoReturn

from gitback.core.exceptions import FilterEvaluationError, FilterSyntaxError

Value = bool | int | str


# --- Lexer -----------------------------------------------------------------

@dataclass(frozen=True)
class Token:
    kind: str  # INT, STRING, IDENT, OP, NEWLINE, EOF
    text: str
    value: Any
    line: int
    column: int


_OPERATORS = (
    ":=", "==", "!=", "<=", ">=", "&&", "||",
    "=", "<", ">", "!", "+", "-", "*", "/", "%", "(", ")", ",", "?", ":", ";",
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INT_RE = re.compile(r"[0-9]+")


def tokenize(source: str) -> list[Token]:
    """Split ``source`` into tokens."""
    tokens: list[Token] = []
    pos = 0
    line = 1
    line_start = 0
    length = len(source)

    while pos < length:
        char = source[pos]
        column = pos - line_start + 1

        if char == "\n":
            tokens.append(Token("NEWLINE", "\n", None, line, column))
            pos += 1
            line += 1
            line_start = pos
            continue
        if char in " \t\r":
            pos += 1
            continue
        if source.startswith("//", pos):
            end = source.find("\n", pos)
            pos = length if end == -1 else end
            continue

        if char.isdigit():
            match = _INT_RE.match(source, pos)
            assert match is not None
            text = match.group()
            tokens.append(Token("INT", text, int(text), line, column))
            pos = match.end()
            continue

        if char.isalpha() or char == "_":
            match = _IDENT_RE.match(source, pos)
            assert match is not None
            text = match.group()
            tokens.append(Token("IDENT", text, text, line, column))
            pos = match.end()
            continue

        if char == '"':
            value, pos = _read_string(source, pos, line, column)
            tokens.append(Token("STRING", "\"", value, line, column))
            continue

        if char == "`":
            end = source.find("`", pos + 1)
            if end == -1:
                raise FilterSyntaxError(f"unterminated raw string at {line}:{column}")
            tokens.append(Token("STRING", "`", source[pos + 1:end], line, column))
            line += source.count("\n", pos, end)
            pos = end + 1
            continue

        for op in _OPERATORS:
            if source.startswith(op, pos):
                tokens.append(Token("OP", op, None, line, column))
                pos += len(op)
                break
        else:
            raise FilterSyntaxError(f"unexpected character {char!r} at {line}:{column}")

    tokens.append(Token("EOF", "", None, line, pos - line_start + 1))
    return tokens


def _read_string(source: str, pos: int, line: int, column: int) -> tuple[str, int]:
    chars: list[str] = []
    pos += 1
    while pos < len(source):
        char = source[pos]
        if char == '"':
            return "".join(chars), pos + 1
        if char == "\n":
            break
        if char == "\\":
            pos += 1
            if pos >= len(source) or source[pos] not in _ESCAPES:
                raise FilterSyntaxError(f"invalid escape in string at {line}:{column}")
            chars.append(_ESCAPES[source[pos]])
        else:
            chars.append(char)
        pos += 1
    raise FilterSyntaxError(f"unterminated string at {line}:{column}")


# --- Syntax tree -------------------------------------------------------------

@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Name:
    id: str


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Logical:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Conditional:
    test: Any
    body: Any
    orelse: Any


@dataclass(frozen=True)
class Call:
    func: str
    args: tuple


@dataclass(frozen=True)
class Assign:
    target: str
    value: Any
    declare: bool


# --- Builtins ----------------------------------------------------------------

def _matches(text: str, pattern: str) -> bool:
    try:
        return re.search(pattern, text) is not None
    except re.error as e:
        raise FilterEvaluationError(f"invalid pattern {pattern!r}: {e}") from e


# name -> (argument types, implementation)
BUILTINS: dict[str, tuple[tuple[type, ...], Callable[..., Value]]] = {
    "len": ((str,), len),
    "lower": ((str,), str.lower),
    "contains": ((str, str), lambda s, sub: sub in s),
    "has_prefix": ((str, str), str.startswith),
    "has_suffix": ((str, str), str.endswith),
    "matches": ((str, str), _matches),
}


# --- Parser ------------------------------------------------------------------

_COMPARISON_OPS = ("==", "!=", "<", "<=", ">", ">=")


class _Parser:
    """Recursive descent parser producing a list of assignments."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind != "EOF":
            self._pos += 1
        return token

    def _at_op(self, *ops: str) -> bool:
        return self._current.kind == "OP" and self._current.text in ops

    def _expect_op(self, op: str) -> Token:
        if not self._at_op(op):
            self._fail(f"expected {op!r}")
        return self._advance()

    def _fail(self, message: str) -> NoReturn:
        token = self._current
        found = "end of input" if token.kind == "EOF" else repr(token.text)
        raise FilterSyntaxError(
            f"{message} at {token.line}:{token.column}, found {found}"
        )

    def _skip_separators(self) -> None:
        while self._current.kind == "NEWLINE" or self._at_op(";"):
            self._advance()

    def parse_program(self) -> list[Assign]:
        statements: list[Assign] = []
        self._skip_separators()
        while self._current.kind != "EOF":
            statements.append(self._statement())
            if self._current.kind != "EOF" and not (
                self._current.kind == "NEWLINE" or self._at_op(";")
            ):
                self._fail("expected end of statement")
            self._skip_separators()
        return statements

    def _statement(self) -> Assign:
        if self._current.kind != "IDENT":
            self._fail("expected assignment")
        target = self._advance().text
        if self._at_op(":="):
            declare = True
        elif self._at_op("="):
            declare = False
        else:
            self._fail(f"expected ':=' or '=' after {target!r}")
        self._advance()
        return Assign(target=target, value=self._expression(), declare=declare)

    def _expression(self) -> Any:
        test = self._or()
        if self._at_op("?"):
            self._advance()
            body = self._expression()
            self._expect_op(":")
            orelse = self._expression()
            return Conditional(test, body, orelse)
        return test

    def _or(self) -> Any:
        node = self._and()
        while self._at_op("||"):
            self._advance()
            node = Logical("||", node, self._and())
        return node

    def _and(self) -> Any:
        node = self._comparison()
        while self._at_op("&&"):
            self._advance()
            node = Logical("&&", node, self._comparison())
        return node

    def _comparison(self) -> Any:
        node = self._additive()
        if self._at_op(*_COMPARISON_OPS):
            op = self._advance().text
            node = Binary(op, node, self._additive())
            if self._at_op(*_COMPARISON_OPS):
                self._fail("comparisons cannot be chained")
        return node

    def _additive(self) -> Any:
        node = self._multiplicative()
        while self._at_op("+", "-"):
            op = self._advance().text
            node = Binary(op, node, self._multiplicative())
        return node

    def _multiplicative(self) -> Any:
        node = self._unary()
        while self._at_op("*", "/", "%"):
            op = self._advance().text
            node = Binary(op, node, self._unary())
        return node

    def _unary(self) -> Any:
        if self._at_op("!", "-"):
            op = self._advance().text
            return Unary(op, self._unary())
        return self._primary()

    def _primary(self) -> Any:
        token = self._current
        if token.kind in ("INT", "STRING"):
            self._advance()
            return Literal(token.value)
        if token.kind == "IDENT":
            self._advance()
            if token.text == "true":
                return Literal(True)
            if token.text == "false":
                return Literal(False)
            if self._at_op("("):
                return Call(token.text, self._arguments())
            return Name(token.text)
        if self._at_op("("):
            self._advance()
            node = self._expression()
            self._expect_op(")")
            return node
        self._fail("expected expression")

    def _arguments(self) -> tuple:
        self._expect_op("(")
        args = []
        if not self._at_op(")"):
            args.append(self._expression())
            while self._at_op(","):
                self._advance()
                args.append(self._expression())
        self._expect_op(")")
        return tuple(args)


# --- Evaluation --------------------------------------------------------------

def is_truthy(value: Value) -> bool:
    """Truthiness as rules see it: false, 0 and "" are falsy."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return value != ""


def _type_name(value: Value) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    return "string"


def _is_int(value: Value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _divide(left: int, right: int) -> int:
    if right == 0:
        raise FilterEvaluationError("division by zero")
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _modulo(left: int, right: int) -> int:
    if right == 0:
        raise FilterEvaluationError("division by zero")
    return left - right * _divide(left, right)


_ARITHMETIC = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "%": _modulo,
}

_ORDERING = {
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


class Program:
    """A compiled rule program.

    ``readonly`` names are provided by the caller on every run and cannot
    be assigned to.
    """

    def __init__(self, source: str, readonly: frozenset[str] = frozenset()) -> None:
        self.source = source
        self.readonly = readonly
        try:
            self.statements = _Parser(tokenize(source)).parse_program()
            self._check_names()
        except RecursionError as e:
            raise FilterSyntaxError("rule nested too deeply") from e

    def _check_names(self) -> None:
        declared = set(self.readonly)
        for statement in self.statements:
            self._check_expression(statement.value, declared)
            if statement.target in self.readonly:
                raise FilterSyntaxError(f"cannot assign to read-only {statement.target!r}")
            if statement.target in ("true", "false"):
                raise FilterSyntaxError(f"cannot assign to {statement.target!r}")
            if not statement.declare and statement.target not in declared:
                raise FilterSyntaxError(f"unresolved reference {statement.target!r}")
            declared.add(statement.target)

    def _check_expression(self, node: Any, declared: set[str]) -> None:
        if isinstance(node, Name):
            if node.id not in declared:
                raise FilterSyntaxError(f"unresolved reference {node.id!r}")
        elif isinstance(node, Unary):
            self._check_expression(node.operand, declared)
        elif isinstance(node, (Binary, Logical)):
            self._check_expression(node.left, declared)
            self._check_expression(node.right, declared)
        elif isinstance(node, Conditional):
            for child in (node.test, node.body, node.orelse):
                self._check_expression(child, declared)
        elif isinstance(node, Call):
            if node.func not in BUILTINS:
                raise FilterSyntaxError(f"unknown function {node.func!r}")
            arity = len(BUILTINS[node.func][0])
            if len(node.args) != arity:
                raise FilterSyntaxError(
                    f"{node.func}() takes {arity} argument(s), got {len(node.args)}"
                )
            for arg in node.args:
                self._check_expression(arg, declared)

    def run(self, bindings: dict[str, Value]) -> dict[str, Value]:
        """Evaluate the program and return the final variable scope."""
        missing = self.readonly - bindings.keys()
        if missing:
            raise FilterEvaluationError(f"missing bindings: {', '.join(sorted(missing))}")
        scope: dict[str, Value] = dict(bindings)
        try:
            for statement in self.statements:
                scope[statement.target] = self._eval(statement.value, scope)
        except RecursionError as e:
            raise FilterEvaluationError("rule nested too deeply") from e
        return scope

    def _eval(self, node: Any, scope: dict[str, Value]) -> Value:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            return scope[node.id]
        if isinstance(node, Unary):
            return self._eval_unary(node.op, self._eval(node.operand, scope))
        if isinstance(node, Logical):
            left = is_truthy(self._eval(node.left, scope))
            if node.op == "&&":
                return left and is_truthy(self._eval(node.right, scope))
            return left or is_truthy(self._eval(node.right, scope))
        if isinstance(node, Conditional):
            branch = node.body if is_truthy(self._eval(node.test, scope)) else node.orelse
            return self._eval(branch, scope)
        if isinstance(node, Binary):
            left = self._eval(node.left, scope)
            right = self._eval(node.right, scope)
            return self._eval_binary(node.op, left, right)
        if isinstance(node, Call):
            return self._eval_call(node, [self._eval(arg, scope) for arg in node.args])
        raise FilterEvaluationError(f"unsupported node {type(node).__name__}")

    @staticmethod
    def _eval_unary(op: str, operand: Value) -> Value:
        if op == "!":
            return not is_truthy(operand)
        if not _is_int(operand):
            raise FilterEvaluationError(f"invalid operation: -{_type_name(operand)}")
        return -operand

    @staticmethod
    def _eval_binary(op: str, left: Value, right: Value) -> Value:
        if op in ("==", "!="):
            equal = _type_name(left) == _type_name(right) and left == right
            return equal if op == "==" else not equal

        if op in _ORDERING:
            if (_is_int(left) and _is_int(right)) or (
                isinstance(left, str) and isinstance(right, str)
            ):
                return _ORDERING[op](left, right)
        elif op == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right
        elif _is_int(left) and _is_int(right):
            return _ARITHMETIC[op](left, right)

        raise FilterEvaluationError(
            f"invalid operation: {_type_name(left)} {op} {_type_name(right)}"
        )

    @staticmethod
    def _eval_call(node: Call, args: list[Value]) -> Value:
        arg_types, func = BUILTINS[node.func]
        for position, (arg, expected) in enumerate(zip(args, arg_types), 1):
            if not isinstance(arg, expected) or isinstance(arg, bool) != (expected is bool):
                raise FilterEvaluationError(
                    f"{node.func}() argument {position} must be {expected.__name__}, "
                    f"got {_type_name(arg)}"
                )
        return func(*args)


def compile_expression(source: str, readonly: frozenset[str] = frozenset()) -> Program:
    """Parse and check ``source``. Raises ``FilterSyntaxError`` when invalid."""
    return Program(source, readonly=readonly)
