"""Restricted expression language for predictor and component input expressions.

Expressions are parsed with :mod:`ast` and evaluated by walking the tree
against an explicit :class:`Scope`. Only arithmetic, comparisons, indexing,
literals, names and calls of callables bound in the scope are allowed;
attribute access, lambdas, comprehensions and assignments are rejected at
parse time.
"""

from __future__ import annotations

import ast
import operator
from typing import Any, Dict, Iterable, Mapping, Optional, Set

import numpy as np
import pandas as pd
import scipy.special
import scipy.stats

from .errors import EvaluationError
from .util import nrow

__all__ = [
    "DATA_NAME",
    "FUNCTIONS",
    "Expression",
    "Scope",
    "data_fields",
    "data_length",
    "data_scope",
]

DATA_NAME = ".data."
# ".data." is not a valid identifier; expressions refer to it as _data_.
_ALIASES = {"_data_": DATA_NAME}


def _cbind(*cols: Any) -> np.ndarray:
    return np.column_stack([np.asarray(c) for c in cols])


def _concat(*values: Any) -> np.ndarray:
    return np.concatenate([np.atleast_1d(np.asarray(v)) for v in values])


FUNCTIONS: Dict[str, Any] = {
    "exp": np.exp,
    "log": np.log,
    "log1p": np.log1p,
    "expm1": np.expm1,
    "sqrt": np.sqrt,
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "abs": np.abs,
    "sum": np.sum,
    "mean": np.mean,
    "min": np.min,
    "max": np.max,
    "pmin": np.minimum,
    "pmax": np.maximum,
    "ifelse": np.where,
    "array": np.asarray,
    "rep": np.repeat,
    "c": _concat,
    "cbind": _cbind,
    "length": nrow,
    "plogis": scipy.special.expit,
    "qlogis": scipy.special.logit,
    "pnorm": scipy.stats.norm.cdf,
    "qnorm": scipy.stats.norm.ppf,
    "dnorm": scipy.stats.norm.pdf,
}


class Scope:
    """Explicit symbol table used to evaluate expressions."""

    def __init__(self, symbols: Optional[Mapping[str, Any]] = None):
        self._symbols: Dict[str, Any] = dict(symbols or {})

    def bind(self, name: str, value: Any) -> None:
        self._symbols[name] = value

    def update(self, symbols: Mapping[str, Any]) -> None:
        self._symbols.update(symbols)

    def lookup(self, name: str) -> Any:
        name = _ALIASES.get(name, name)
        try:
            return self._symbols[name]
        except KeyError:
            raise EvaluationError(f"object {name!r} not found") from None

    def get(self, name: str, default: Any = None) -> Any:
        return self._symbols.get(_ALIASES.get(name, name), default)

    def __contains__(self, name: object) -> bool:
        return _ALIASES.get(name, name) in self._symbols  # type: ignore[arg-type]

    def names(self) -> Iterable[str]:
        return self._symbols.keys()


def data_fields(data: Any) -> Dict[str, Any]:
    """Named fields of a data object (DataFrame columns or mapping entries)."""
    if data is None:
        return {}
    if isinstance(data, pd.DataFrame):
        return {str(c): data[c].to_numpy() for c in data.columns}
    if isinstance(data, Mapping):
        return {str(k): v for k, v in data.items()}
    return data_fields(pd.DataFrame(data))


def data_length(data: Any) -> int:
    """Number of observations in a data object (1 when there is no data)."""
    if data is None:
        return 1
    if isinstance(data, pd.DataFrame):
        return len(data)
    lengths = [nrow(v) for v in data_fields(data).values()]
    return max(lengths) if lengths else 1


def data_scope(data: Any) -> Scope:
    """Scope with the numeric functions, every data field and the raw data object."""
    scope = Scope(FUNCTIONS)
    scope.update(data_fields(data))
    scope.bind(DATA_NAME, data)
    return scope


_BINOPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.MatMult: operator.matmul,
    ast.BitAnd: operator.and_,
    ast.BitOr: operator.or_,
}
_UNARYOPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: np.logical_not,
    ast.Invert: operator.invert,
}
_CMPOPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}
_ALLOWED = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Compare,
    ast.Call,
    ast.keyword,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Subscript,
    ast.Slice,
    ast.Tuple,
    ast.List,
    *_BINOPS,
    *_UNARYOPS,
    *_CMPOPS,
)


def _validate(tree: ast.AST, text: str) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED):
            raise EvaluationError(
                f"Unsupported syntax {type(node).__name__!r} in expression {text!r}."
            )
        if isinstance(node, ast.Call) and not isinstance(node.func, ast.Name):
            raise EvaluationError(
                f"Only named functions can be called in expression {text!r}."
            )


class _Evaluator(ast.NodeVisitor):
    def __init__(self, scope: Scope):
        self.scope = scope

    def generic_visit(self, node: ast.AST) -> Any:
        raise EvaluationError(f"Unsupported syntax {type(node).__name__!r}.")

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        return self.scope.lookup(node.id)

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(e) for e in node.elts)

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(e) for e in node.elts]

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        return _BINOPS[type(node.op)](self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return _UNARYOPS[type(node.op)](self.visit(node.operand))

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        result: Any = True
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            result = np.logical_and(result, _CMPOPS[type(op)](left, right))
            left = right
        return result

    def visit_Slice(self, node: ast.Slice) -> Any:
        return slice(
            None if node.lower is None else self.visit(node.lower),
            None if node.upper is None else self.visit(node.upper),
            None if node.step is None else self.visit(node.step),
        )

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        return self.visit(node.value)[self.visit(node.slice)]

    def visit_Call(self, node: ast.Call) -> Any:
        func = self.visit(node.func)
        if not callable(func):
            raise EvaluationError(f"{node.func.id!r} is not a function.")  # type: ignore[attr-defined]
        args = [self.visit(a) for a in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords}
        return func(*args, **kwargs)


class Expression:
    """A parsed, validated restricted expression.

    A leading ``~`` is dropped, so formula-style right hand sides such as
    ``"~ exp(Intercept + x)"`` are accepted.
    """

    def __init__(self, text: str):
        text = text.strip()
        if text.startswith("~"):
            text = text[1:].strip()
        try:
            tree = ast.parse(text, mode="eval")
        except SyntaxError as e:
            raise EvaluationError(f"Invalid expression {text!r}: {e.msg}") from e
        _validate(tree, text)
        self.text = text
        self._tree = tree

    @staticmethod
    def parse(expr: Any) -> "Expression":
        if isinstance(expr, Expression):
            return expr
        if isinstance(expr, str):
            return Expression(expr)
        raise TypeError(f"Expected an expression string; got {type(expr).__name__}.")

    def names(self) -> Set[str]:
        """Names referenced by the expression."""
        return {n.id for n in ast.walk(self._tree) if isinstance(n, ast.Name)}

    def evaluate(self, scope: Scope) -> Any:
        try:
            return _Evaluator(scope).visit(self._tree.body)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"Error evaluating {self.text!r}: {e}") from e

    def __repr__(self) -> str:
        return f"Expression({self.text!r})"
