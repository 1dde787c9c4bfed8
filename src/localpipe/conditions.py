# conditions.py
"""
Minimal condition language for GitHub `if:` and Azure `condition:`.

Supported:
  - literals: true, false, null, numbers, 'single quoted strings'
  - references: env.NAME, variables.NAME, variables['NAME'], $(NAME),
    dotted names looked up as a whole (Build.SourceBranch)
  - operators: !, ==, !=, &&, ||, parentheses
  - functions: always, success, succeeded, failure, failed, cancelled,
    canceled, succeededOrFailed, eq, ne, and, or, not, in, notIn,
    contains, startsWith, endsWith

Anything else raises ConditionError. String comparison ignores case,
as both vendors do.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<macro>\$\((?P<macro_name>[^)]+)\))
  | (?P<number>-?\d+(?:\.\d+)?)
  | (?P<string>'(?:[^']|'')*')
  | (?P<op>==|!=|&&|\|\||!|\(|\)|\[|\]|,|\.)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_\-]*)
    """,
    re.VERBOSE,
)

_WRAPPER_RE = re.compile(r"\$\{\{\s*(.*?)\s*\}\}", re.DOTALL)

_SCOPE_ROOTS = ("env", "variables", "vars")


class ConditionError(ValueError):
    pass


@dataclass(frozen=True)
class ConditionContext:
    variables: Mapping[str, str] = field(default_factory=dict)
    failed: bool = False


@dataclass(frozen=True)
class _Token:
    kind: str
    value: str


def _tokenize(text: str) -> List[_Token]:
    tokens: List[_Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise ConditionError(f"unexpected character {text[pos]!r} at {pos} in {text!r}")
        pos = m.end()
        kind = m.lastgroup
        if kind == "ws":
            continue
        if kind == "macro_name":
            kind = "macro"
        if kind == "macro":
            tokens.append(_Token("macro", m.group("macro_name").strip()))
        elif kind == "string":
            tokens.append(_Token("string", m.group("string")[1:-1].replace("''", "'")))
        else:
            tokens.append(_Token(kind, m.group(kind)))
    return tokens


# ---------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------

def _truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() not in ("", "false", "0")


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _equals(a: Any, b: Any) -> bool:
    na, nb = _as_number(a), _as_number(b)
    if na is not None and nb is not None:
        return na == nb
    return _as_text(a).lower() == _as_text(b).lower()


# ---------------------------------------------------------------------
# Parser / evaluator
# ---------------------------------------------------------------------

class _Parser:
    def __init__(self, tokens: List[_Token], context: ConditionContext):
        self.tokens = tokens
        self.pos = 0
        self.ctx = context
        self.functions: Dict[str, Callable[[List[Any]], Any]] = {
            "always": lambda args: True,
            "success": lambda args: not self.ctx.failed,
            "succeeded": lambda args: not self.ctx.failed,
            "failure": lambda args: self.ctx.failed,
            "failed": lambda args: self.ctx.failed,
            "cancelled": lambda args: False,
            "canceled": lambda args: False,
            "succeededorfailed": lambda args: True,
            "eq": lambda args: _equals(args[0], args[1]),
            "ne": lambda args: not _equals(args[0], args[1]),
            "and": lambda args: all(_truthy(a) for a in args),
            "or": lambda args: any(_truthy(a) for a in args),
            "not": lambda args: not _truthy(args[0]),
            "in": lambda args: any(_equals(args[0], a) for a in args[1:]),
            "notin": lambda args: not any(_equals(args[0], a) for a in args[1:]),
            "contains": lambda args: _as_text(args[1]).lower() in _as_text(args[0]).lower(),
            "startswith": lambda args: _as_text(args[0]).lower().startswith(_as_text(args[1]).lower()),
            "endswith": lambda args: _as_text(args[0]).lower().endswith(_as_text(args[1]).lower()),
        }
        self.min_args = {"eq": 2, "ne": 2, "not": 1, "in": 1, "notin": 1,
                         "contains": 2, "startswith": 2, "endswith": 2}

    def peek(self) -> Optional[_Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, value: str | None = None) -> _Token:
        tok = self.peek()
        if tok is None:
            raise ConditionError("unexpected end of expression")
        if value is not None and tok.value != value:
            raise ConditionError(f"expected {value!r}, got {tok.value!r}")
        self.pos += 1
        return tok

    def parse(self) -> Any:
        value = self.parse_or()
        if self.peek() is not None:
            raise ConditionError(f"unexpected token {self.peek().value!r}")
        return value

    def parse_or(self) -> Any:
        value = self.parse_and()
        while self.peek() is not None and self.peek().value == "||":
            self.take()
            right = self.parse_and()
            value = _truthy(value) or _truthy(right)
        return value

    def parse_and(self) -> Any:
        value = self.parse_unary()
        while self.peek() is not None and self.peek().value == "&&":
            self.take()
            right = self.parse_unary()
            value = _truthy(value) and _truthy(right)
        return value

    def parse_unary(self) -> Any:
        tok = self.peek()
        if tok is not None and tok.kind == "op" and tok.value == "!":
            self.take()
            return not _truthy(self.parse_unary())
        return self.parse_comparison()

    def parse_comparison(self) -> Any:
        left = self.parse_primary()
        tok = self.peek()
        if tok is not None and tok.value in ("==", "!="):
            self.take()
            right = self.parse_primary()
            equal = _equals(left, right)
            return equal if tok.value == "==" else not equal
        return left

    def parse_primary(self) -> Any:
        tok = self.take()
        if tok.kind == "op" and tok.value == "(":
            value = self.parse_or()
            self.take(")")
            return value
        if tok.kind == "number":
            return float(tok.value)
        if tok.kind == "string":
            return tok.value
        if tok.kind == "macro":
            return self.ctx.variables.get(tok.value)
        if tok.kind == "ident":
            lowered = tok.value.lower()
            if lowered == "true":
                return True
            if lowered == "false":
                return False
            if lowered == "null":
                return None
            nxt = self.peek()
            if nxt is not None and nxt.value == "(":
                return self.parse_call(tok.value)
            return self.parse_reference(tok.value)
        raise ConditionError(f"unexpected token {tok.value!r}")

    def parse_call(self, name: str) -> Any:
        fn = self.functions.get(name.lower())
        if fn is None:
            raise ConditionError(f"unsupported function {name}()")
        self.take("(")
        args: List[Any] = []
        if self.peek() is not None and self.peek().value != ")":
            args.append(self.parse_or())
            while self.peek() is not None and self.peek().value == ",":
                self.take()
                args.append(self.parse_or())
        self.take(")")
        needed = self.min_args.get(name.lower(), 0)
        if len(args) < needed:
            raise ConditionError(f"{name}() needs at least {needed} argument(s)")
        return fn(args)

    def parse_reference(self, root: str) -> Any:
        parts = [root]
        while self.peek() is not None and self.peek().value in (".", "["):
            if self.take().value == ".":
                parts.append(self.take().value)
            else:
                key = self.take()
                if key.kind != "string":
                    raise ConditionError("index must be a quoted string")
                self.take("]")
                parts.append(key.value)

        if parts[0].lower() in _SCOPE_ROOTS and len(parts) > 1:
            return self.ctx.variables.get(".".join(parts[1:]))
        # github.*, matrix.*, steps.* have no local value
        return self.ctx.variables.get(".".join(parts))


def strip_wrappers(expression: str) -> str:
    """Replace GitHub `${{ expr }}` wrappers by `(expr)`."""
    return _WRAPPER_RE.sub(lambda m: f"({m.group(1)})", expression)


def evaluate(expression: str, context: ConditionContext) -> bool:
    text = strip_wrappers(expression.strip())
    if not text:
        return True
    return _truthy(_Parser(_tokenize(text), context).parse())


def check_condition(expression: str | None, context: ConditionContext) -> Tuple[bool, Optional[str]]:
    """
    Evaluate without raising.

    Returns (should_run, warning). An expression outside the supported
    subset runs (True) and comes back with a warning.
    """
    if expression is None:
        return True, None
    if isinstance(expression, bool):
        return expression, None
    try:
        return evaluate(str(expression), context), None
    except ConditionError as e:
        return True, f"condition {expression!r} not supported ({e}); running anyway"
