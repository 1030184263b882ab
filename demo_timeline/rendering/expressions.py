# -*- coding: utf-8 -*-
"""
Árvore de expressões do avaliador do FFmpeg

As expressões são montadas como nós (números, variável t, operadores e
funções) e serializadas uma única vez. A avaliação em Python usa os mesmos
valores formatados que vão para o texto, então evaluate() reproduz o que o
FFmpeg calcula quadro a quadro.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Sequence, Union

# Vírgulas dentro de argumentos de filtro precisam de escape no filtergraph
ESCAPED_COMMA = "\\,"


class Expr:
    """Nó base da árvore de expressões"""

    def render(self, comma: str = ESCAPED_COMMA) -> str:
        raise NotImplementedError

    def evaluate(self, t: float) -> float:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class Num(Expr):
    """Constante numérica com precisão fixa"""

    value: float
    precision: int = 1

    def render(self, comma: str = ESCAPED_COMMA) -> str:
        if self.precision == 0:
            return str(int(round(self.value)))
        return f"{self.value:.{self.precision}f}"

    def evaluate(self, t: float) -> float:
        return float(self.render())


@dataclass(frozen=True)
class Var(Expr):
    """Variável de tempo do FFmpeg (t, em segundos)"""

    name: str = "t"

    def render(self, comma: str = ESCAPED_COMMA) -> str:
        return self.name

    def evaluate(self, t: float) -> float:
        return t


def _divide(a: float, b: float) -> float:
    if b == 0:
        return float("inf") if a >= 0 else float("-inf")
    return a / b


_OPERATORS: dict[str, Callable[[float, float], float]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
}


@dataclass(frozen=True)
class BinOp(Expr):
    """Operação aritmética; operandos compostos vão entre parênteses"""

    op: str
    left: Expr
    right: Expr

    def render(self, comma: str = ESCAPED_COMMA) -> str:
        return f"{_operand(self.left, comma)}{self.op}{_operand(self.right, comma)}"

    def evaluate(self, t: float) -> float:
        return _OPERATORS[self.op](self.left.evaluate(t), self.right.evaluate(t))


def _operand(node: Expr, comma: str) -> str:
    text = node.render(comma)
    return f"({text})" if isinstance(node, BinOp) else text


_FUNCTIONS: dict[str, Callable[..., float]] = {
    "if": lambda cond, then, otherwise: then if cond != 0 else otherwise,
    "lt": lambda a, b: 1.0 if a < b else 0.0,
    "max": max,
    "min": min,
}


@dataclass(frozen=True)
class Call(Expr):
    """Chamada de função do avaliador (if, lt, max, min)"""

    name: str
    args: tuple[Expr, ...]

    def render(self, comma: str = ESCAPED_COMMA) -> str:
        return f"{self.name}({comma.join(arg.render(comma) for arg in self.args)})"

    def evaluate(self, t: float) -> float:
        if self.name == "if":
            # Avaliação preguiçosa, como no FFmpeg
            cond, then, otherwise = self.args
            return then.evaluate(t) if cond.evaluate(t) != 0 else otherwise.evaluate(t)
        return _FUNCTIONS[self.name](*(arg.evaluate(t) for arg in self.args))


Operand = Union[Expr, float, int]


def lift(value: Operand, precision: int = 1) -> Expr:
    """Converte números em Num, mantendo nós existentes"""
    if isinstance(value, Expr):
        return value
    return Num(float(value), precision)


def add(a: Operand, b: Operand) -> Expr:
    return BinOp("+", lift(a), lift(b))


def sub(a: Operand, b: Operand) -> Expr:
    return BinOp("-", lift(a), lift(b))


def mul(a: Operand, b: Operand) -> Expr:
    return BinOp("*", lift(a), lift(b))


def div(a: Operand, b: Operand) -> Expr:
    return BinOp("/", lift(a), lift(b))


def maximum(a: Operand, b: Operand) -> Expr:
    return Call("max", (lift(a), lift(b)))


def minimum(a: Operand, b: Operand) -> Expr:
    return Call("min", (lift(a), lift(b)))


def if_before(boundary: float, then: Expr, otherwise: Expr) -> Expr:
    """if(lt(t,boundary),then,otherwise)"""
    condition = Call("lt", (Var(), Num(boundary, 2)))
    return Call("if", (condition, then, otherwise))


def linear(
    v0: float, slope: float, t0: float, value_precision: int = 1, slope_precision: int = 2
) -> Expr:
    """Segmento linear v0 + slope*(t - t0)"""
    return add(
        Num(v0, value_precision),
        mul(Num(slope, slope_precision), sub(Var(), Num(t0, 2))),
    )


def clamp(value: Operand, low: Operand, high: Operand) -> Expr:
    """max(low, min(high, value))"""
    return maximum(low, minimum(high, value))


def piecewise_linear(
    points: Sequence[tuple[float, float]],
    value_precision: int = 1,
    slope_precision: int = 2,
) -> Expr:
    """
    Interpolação linear por partes sobre (tempo, valor)

    Montada da direita para a esquerda: cada if() só referencia a próxima
    fronteira, então o tamanho cresce linearmente com o número de pontos.
    Pontos com tempo não crescente são ignorados.
    """
    if not points:
        return Num(0.0, value_precision)

    expr: Expr = Num(points[-1][1], value_precision)
    for (t0, v0), (t1, v1) in reversed(list(zip(points, points[1:]))):
        if t1 <= t0:
            continue
        slope = (v1 - v0) / (t1 - t0)
        expr = if_before(
            t1, linear(v0, slope, t0, value_precision, slope_precision), expr
        )
    return expr
