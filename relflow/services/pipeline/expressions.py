"""Stage condition expressions.

A subset of the Azure Pipelines runtime expression language, enough for the
branch-gated conditions a GitFlow pipeline uses:

    and(succeeded(), startsWith(variables['Build.SourceBranch'], 'refs/heads/release/'))

Supported: string literals ('it''s'), numbers, true/false,
`variables['Name']` and `variables.Name`, and the functions in `_FUNCTIONS`.
Function names, variable names and string comparisons are case-insensitive.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Literal

from relflow.core.result import Err, Ok, Result
from relflow.services.pipeline.errors import PipelineError

Value = str | float | bool | None
DependencyResult = Literal["succeeded", "failed", "skipped"]


class ExpressionError(Exception):
    def __init__(self, message: str, column: int) -> None:
        super().__init__(f"{message} (column {column + 1})")
        self.column = column


@dataclass(frozen=True, slots=True)
class Const:
    value: Value


@dataclass(frozen=True, slots=True)
class Variable:
    name: str


@dataclass(frozen=True, slots=True)
class Call:
    name: str
    args: tuple[Node, ...]


type Node = Const | Variable | Call


@dataclass(frozen=True, slots=True)
class EvalContext:
    variables: Mapping[str, str]
    dependencies: Mapping[str, DependencyResult]

    def variable(self, name: str) -> str | None:
        wanted = name.casefold()
        for k, v in self.variables.items():
            if k.casefold() == wanted:
                return v
        return None


# -----------------------------------------------------------------------------
# Tokenizer
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Token:
    kind: Literal["ident", "string", "number", "punct", "end"]
    text: str
    pos: int


_PUNCT = "(),[]"


def _tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    n = len(source)
    while i < n:
        c = source[i]
        if c.isspace():
            i += 1
            continue
        if c in _PUNCT:
            tokens.append(_Token("punct", c, i))
            i += 1
            continue
        if c == "'":
            start = i
            i += 1
            buf: list[str] = []
            while True:
                if i >= n:
                    raise ExpressionError("unterminated string literal", start)
                if source[i] == "'":
                    if i + 1 < n and source[i + 1] == "'":
                        buf.append("'")
                        i += 2
                        continue
                    i += 1
                    break
                buf.append(source[i])
                i += 1
            tokens.append(_Token("string", "".join(buf), start))
            continue
        if c.isdigit() or (c == "-" and i + 1 < n and source[i + 1].isdigit()):
            start = i
            i += 1
            while i < n and (source[i].isdigit() or source[i] == "."):
                i += 1
            tokens.append(_Token("number", source[start:i], start))
            continue
        if c.isalpha() or c == "_":
            start = i
            while i < n and (source[i].isalnum() or source[i] in "_."):
                i += 1
            tokens.append(_Token("ident", source[start:i], start))
            continue
        raise ExpressionError(f"unexpected character {c!r}", i)

    tokens.append(_Token("end", "", n))
    return tokens


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------

# name -> (min args, max args or None for variadic)
_ARITY: dict[str, tuple[int, int | None]] = {
    "and": (2, None),
    "or": (2, None),
    "not": (1, 1),
    "xor": (2, 2),
    "eq": (2, 2),
    "ne": (2, 2),
    "gt": (2, 2),
    "lt": (2, 2),
    "ge": (2, 2),
    "le": (2, 2),
    "startswith": (2, 2),
    "endswith": (2, 2),
    "contains": (2, 2),
    "in": (1, None),
    "notin": (1, None),
    "succeeded": (0, None),
    "failed": (0, None),
    "succeededorfailed": (0, None),
    "always": (0, 0),
    "canceled": (0, 0),
}


class _Parser:
    def __init__(self, source: str) -> None:
        self._tokens = _tokenize(source)
        self._i = 0

    def _peek(self) -> _Token:
        return self._tokens[self._i]

    def _next(self) -> _Token:
        tok = self._tokens[self._i]
        self._i += 1
        return tok

    def _expect(self, text: str) -> _Token:
        tok = self._next()
        if tok.kind != "punct" or tok.text != text:
            shown = tok.text or "end of expression"
            raise ExpressionError(f"expected '{text}', found {shown!r}", tok.pos)
        return tok

    def parse(self) -> Node:
        node = self._expr()
        tok = self._peek()
        if tok.kind != "end":
            raise ExpressionError(f"unexpected {tok.text!r} after expression", tok.pos)
        return node

    def _expr(self) -> Node:
        tok = self._next()
        match tok.kind:
            case "string":
                return Const(tok.text)
            case "number":
                try:
                    return Const(float(tok.text))
                except ValueError:
                    raise ExpressionError(f"invalid number {tok.text!r}", tok.pos) from None
            case "ident":
                return self._ident(tok)
            case _:
                shown = tok.text or "end of expression"
                raise ExpressionError(f"unexpected {shown!r}", tok.pos)

    def _ident(self, tok: _Token) -> Node:
        lowered = tok.text.casefold()
        if lowered in ("true", "false"):
            return Const(lowered == "true")
        if lowered == "null":
            return Const(None)
        if lowered == "variables":
            self._expect("[")
            name_tok = self._next()
            if name_tok.kind != "string":
                raise ExpressionError("variables[...] expects a quoted name", name_tok.pos)
            self._expect("]")
            return Variable(name_tok.text)
        if lowered.startswith("variables."):
            return Variable(tok.text[len("variables.") :])

        if lowered not in _ARITY:
            raise ExpressionError(f"unknown function {tok.text!r}", tok.pos)
        self._expect("(")
        args: list[Node] = []
        if not (self._peek().kind == "punct" and self._peek().text == ")"):
            args.append(self._expr())
            while self._peek().kind == "punct" and self._peek().text == ",":
                self._next()
                args.append(self._expr())
        self._expect(")")

        lo, hi = _ARITY[lowered]
        if len(args) < lo or (hi is not None and len(args) > hi):
            expected = f"{lo}" if lo == hi else f"{lo}..{hi if hi is not None else 'n'}"
            raise ExpressionError(
                f"{tok.text}() takes {expected} argument(s), got {len(args)}", tok.pos
            )
        if lowered in ("succeeded", "failed", "succeededorfailed"):
            for a in args:
                if not (isinstance(a, Const) and isinstance(a.value, str)):
                    raise ExpressionError(f"{tok.text}() expects stage names", tok.pos)
        return Call(lowered, tuple(args))


def parse_condition(source: str) -> Result[Node, PipelineError]:
    try:
        return Ok(_Parser(source).parse())
    except ExpressionError as e:
        return Err(
            PipelineError(
                kind="invalid_condition",
                message=f"invalid condition: {e}",
                hint=source,
            )
        )


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------


def truthy(value: Value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return value != 0
    return value != ""


def _as_str(value: Value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return value


def _as_number(value: Value) -> float | None:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _compare(a: Value, b: Value) -> int:
    na, nb = _as_number(a), _as_number(b)
    if isinstance(a, (float, bool)) and nb is not None and na is not None:
        return (na > nb) - (na < nb)
    sa, sb = _as_str(a).casefold(), _as_str(b).casefold()
    return (sa > sb) - (sa < sb)


def _equals(a: Value, b: Value) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return truthy(a) == truthy(b)
    return _compare(a, b) == 0


def _deps(ctx: EvalContext, names: Sequence[Value]) -> list[DependencyResult]:
    if not names:
        return list(ctx.dependencies.values())
    return [ctx.dependencies.get(_as_str(n), "skipped") for n in names]


def evaluate(node: Node, ctx: EvalContext) -> Value:
    match node:
        case Const(value=v):
            return v
        case Variable(name=name):
            return ctx.variable(name)
        case Call(name=name, args=args):
            return _call(name, args, ctx)


def _call(name: str, args: tuple[Node, ...], ctx: EvalContext) -> Value:
    # Boolean combinators short-circuit.
    if name == "and":
        return all(truthy(evaluate(a, ctx)) for a in args)
    if name == "or":
        return any(truthy(evaluate(a, ctx)) for a in args)

    values = [evaluate(a, ctx) for a in args]
    fn = _FUNCTIONS[name]
    return fn(values, ctx)


def _succeeded(values: Sequence[Value], ctx: EvalContext) -> bool:
    return all(r == "succeeded" for r in _deps(ctx, values))


def _failed(values: Sequence[Value], ctx: EvalContext) -> bool:
    return any(r == "failed" for r in _deps(ctx, values))


def _succeeded_or_failed(values: Sequence[Value], ctx: EvalContext) -> bool:
    return all(r in ("succeeded", "failed") for r in _deps(ctx, values))


_FUNCTIONS: dict[str, Callable[[Sequence[Value], EvalContext], Value]] = {
    "not": lambda v, _: not truthy(v[0]),
    "xor": lambda v, _: truthy(v[0]) != truthy(v[1]),
    "eq": lambda v, _: _equals(v[0], v[1]),
    "ne": lambda v, _: not _equals(v[0], v[1]),
    "gt": lambda v, _: _compare(v[0], v[1]) > 0,
    "lt": lambda v, _: _compare(v[0], v[1]) < 0,
    "ge": lambda v, _: _compare(v[0], v[1]) >= 0,
    "le": lambda v, _: _compare(v[0], v[1]) <= 0,
    "startswith": lambda v, _: _as_str(v[0]).casefold().startswith(_as_str(v[1]).casefold()),
    "endswith": lambda v, _: _as_str(v[0]).casefold().endswith(_as_str(v[1]).casefold()),
    "contains": lambda v, _: _as_str(v[1]).casefold() in _as_str(v[0]).casefold(),
    "in": lambda v, _: any(_equals(v[0], x) for x in v[1:]),
    "notin": lambda v, _: not any(_equals(v[0], x) for x in v[1:]),
    "succeeded": _succeeded,
    "failed": _failed,
    "succeededorfailed": _succeeded_or_failed,
    "always": lambda _v, _c: True,
    "canceled": lambda _v, _c: False,
}


def evaluate_condition(source: str, ctx: EvalContext) -> Result[bool, PipelineError]:
    parsed = parse_condition(source)
    if isinstance(parsed, Err):
        return parsed
    return Ok(truthy(evaluate(parsed.value, ctx)))
