"""
Avaliador restrito de expressões bizCode sobre os argumentos nomeados da chamada.

Gramática suportada:

    expr    := term ('+' term)*
    term    := primary ('.' NAME | '[' expr ']')*
    primary := '#' NAME | STRING | INTEGER | '(' expr ')'

Exemplos: ``#name``, ``#user.id``, ``#items[0]``, ``'article-' + #articleId``
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Tuple

from trace_mdc.core.exceptions import BizCodeExpressionError

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<var>\#[A-Za-z_][A-Za-z0-9_]*)
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
      | (?P<int>\d+)
      | (?P<str>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<op>[+.\[\]()])
    )
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Node:
    kind: str
    value: Any = None
    children: Tuple["_Node", ...] = ()


def _tokenize(expression: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    end = len(expression.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(expression, pos)
        if not match or match.end() == pos:
            raise BizCodeExpressionError(expression, f"caractere inesperado na posição {pos}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.pos = 0

    def _peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise BizCodeExpressionError(self.expression, "fim inesperado da expressão")
        self.pos += 1
        return token

    def _expect(self, op: str) -> None:
        kind, value = self._take()
        if kind != "op" or value != op:
            raise BizCodeExpressionError(self.expression, f"esperado '{op}', encontrado '{value}'")

    def parse(self) -> _Node:
        node = self._expr()
        if self._peek() is not None:
            raise BizCodeExpressionError(self.expression, f"token inesperado '{self._peek()[1]}'")
        return node

    def _expr(self) -> _Node:
        node = self._term()
        while self._peek() == ("op", "+"):
            self._take()
            node = _Node("add", children=(node, self._term()))
        return node

    def _term(self) -> _Node:
        node = self._primary()
        while True:
            token = self._peek()
            if token == ("op", "."):
                self._take()
                kind, value = self._take()
                if kind != "name":
                    raise BizCodeExpressionError(self.expression, f"nome de atributo inválido '{value}'")
                node = _Node("attr", value, (node,))
            elif token == ("op", "["):
                self._take()
                index = self._expr()
                self._expect("]")
                node = _Node("item", children=(node, index))
            else:
                return node

    def _primary(self) -> _Node:
        kind, value = self._take()
        if kind == "var":
            return _Node("var", value[1:])
        if kind == "int":
            return _Node("const", int(value))
        if kind == "str":
            return _Node("const", _unquote(value))
        if (kind, value) == ("op", "("):
            node = self._expr()
            self._expect(")")
            return node
        raise BizCodeExpressionError(self.expression, f"token inesperado '{value}'")


def _unquote(literal: str) -> str:
    return re.sub(r"\\(.)", r"\1", literal[1:-1])


@lru_cache(maxsize=256)
def parse_expression(expression: str) -> _Node:
    """Faz o parse (cacheado) de uma expressão bizCode."""
    return _Parser(expression).parse()


def _evaluate(node: _Node, variables: Mapping[str, Any], expression: str) -> Any:
    if node.kind == "const":
        return node.value

    if node.kind == "var":
        if node.value not in variables:
            raise BizCodeExpressionError(expression, f"variável desconhecida '#{node.value}'")
        return variables[node.value]

    if node.kind == "attr":
        target = _evaluate(node.children[0], variables, expression)
        if isinstance(target, Mapping) and node.value in target:
            return target[node.value]
        try:
            return getattr(target, node.value)
        except AttributeError as e:
            raise BizCodeExpressionError(expression, str(e)) from e

    if node.kind == "item":
        target = _evaluate(node.children[0], variables, expression)
        index = _evaluate(node.children[1], variables, expression)
        try:
            return target[index]
        except (LookupError, TypeError) as e:
            raise BizCodeExpressionError(expression, f"índice inválido {index!r}: {e}") from e

    # add
    left = _evaluate(node.children[0], variables, expression)
    right = _evaluate(node.children[1], variables, expression)
    if isinstance(left, str) or isinstance(right, str):
        return f"{_to_text(left)}{_to_text(right)}"
    try:
        return left + right
    except TypeError as e:
        raise BizCodeExpressionError(expression, str(e)) from e


def _to_text(value: Any) -> str:
    """Conversão para texto com booleanos minúsculos (true/false)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def evaluate_biz_code(expression: str, variables: Mapping[str, Any]) -> str:
    """
    Avalia a expressão contra as variáveis nomeadas e converte para string.

    Expressão vazia/em branco resulta em "" (sem avaliação).

    Raises:
        BizCodeExpressionError: expressão malformada ou variável inexistente
    """
    if not expression or not expression.strip():
        return ""
    result = _evaluate(parse_expression(expression), variables, expression)
    return "" if result is None else _to_text(result)
