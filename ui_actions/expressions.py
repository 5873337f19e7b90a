"""Sandboxed expression evaluator used for guards and script actions."""

import ast
import operator
import re
from collections.abc import Mapping
from typing import Any, Dict, Optional, Protocol

import structlog

from .errors import ExpressionError

logger = structlog.get_logger(__name__)

_TEMPLATE_RE = re.compile(r"\$\{([^}]+)\}")
_STRING_RE = re.compile(r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')""")

# Applied in order, outside string literals only
_JS_OPERATORS = [
    (re.compile(r"!=="), "!="),
    (re.compile(r"==="), "=="),
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"!(?!=)"), " not "),
]

_LITERALS = {"true": True, "false": False, "null": None, "undefined": None}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

# Upper bounds keeping a single evaluation cheap
_MAX_INT_BITS = 4096
_MAX_SEQUENCE_LENGTH = 100_000

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


class Evaluator(Protocol):
    """Anything that can resolve an expression against a context."""

    def evaluate(self, expression: Any, context: Any = None) -> Any: ...


def to_text(value: Any) -> str:
    """Render a value the way template interpolation shows it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_scope(context: Any) -> Dict[str, Any]:
    if context is None:
        return {}
    if hasattr(context, "to_scope"):
        return context.to_scope()
    if isinstance(context, Mapping):
        return dict(context)
    raise ExpressionError(f"Unsupported expression context: {type(context).__name__}")


def _check_size(op: ast.operator, left: Any, right: Any) -> None:
    """Reject exponentiation and repetition whose result would be huge."""
    if isinstance(op, ast.Pow):
        if (
            isinstance(left, int)
            and isinstance(right, int)
            and right > 0
            and abs(left) > 1
            and left.bit_length() * right > _MAX_INT_BITS
        ):
            raise ExpressionError("Exponent too large")
    elif isinstance(op, ast.Mult):
        for seq, count in ((left, right), (right, left)):
            if (
                isinstance(seq, (str, list, tuple))
                and isinstance(count, int)
                and len(seq) * count > _MAX_SEQUENCE_LENGTH
            ):
                raise ExpressionError("Repetition result too large")


def translate(source: str) -> str:
    """Rewrite JavaScript-style operators into Python syntax."""
    parts = _STRING_RE.split(source)
    for index in range(0, len(parts), 2):
        chunk = parts[index]
        for pattern, replacement in _JS_OPERATORS:
            chunk = pattern.sub(replacement, chunk)
        parts[index] = chunk
    return "".join(parts)


class _Interpreter(ast.NodeVisitor):
    """Walks a parsed expression, allowing only side-effect-free nodes."""

    def __init__(self, scope: Dict[str, Any]) -> None:
        self.scope = scope

    def generic_visit(self, node: ast.AST) -> Any:
        raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id in _LITERALS:
            return _LITERALS[node.id]
        return self.scope.get(node.id)

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        if node.attr.startswith("_"):
            raise ExpressionError(f"Access to private attribute '{node.attr}' is not allowed")
        target = self.visit(node.value)
        if target is None:
            return None
        if isinstance(target, Mapping):
            return target.get(node.attr)
        if node.attr == "length" and isinstance(target, (str, list, tuple)):
            return len(target)
        return getattr(target, node.attr, None)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        target = self.visit(node.value)
        key = self.visit(node.slice)
        if target is None:
            return None
        try:
            return target[key]
        except (KeyError, IndexError, TypeError):
            return None

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Add) and (isinstance(left, str) or isinstance(right, str)):
            return to_text(left) + to_text(right)
        _check_size(node.op, left, right)
        try:
            return op(left, right)
        except (TypeError, ZeroDivisionError, OverflowError) as e:
            raise ExpressionError(str(e)) from e

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        try:
            if isinstance(node.op, ast.USub):
                return -operand
            if isinstance(node.op, ast.UAdd):
                return +operand
        except TypeError as e:
            raise ExpressionError(str(e)) from e
        raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        value: Any = None
        for operand in node.values:
            value = self.visit(operand)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            try:
                if not _COMPARE_OPS[type(op_node)](left, right):
                    return False
            except TypeError:
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_List(self, node: ast.List) -> list:
        return [self.visit(item) for item in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self.visit(item) for item in node.elts)

    def visit_Dict(self, node: ast.Dict) -> dict:
        if any(key is None for key in node.keys):
            raise ExpressionError("Dictionary unpacking is not supported")
        return {self.visit(key): self.visit(value) for key, value in zip(node.keys, node.values)}


class ExpressionEvaluator:
    """Evaluates `${...}` templates against an action context.

    Strings without a template are returned unchanged, a string that is a
    single template yields the raw value, and mixed text is interpolated.
    Missing names and keys resolve to None instead of raising.
    """

    def __init__(self, context: Any = None) -> None:
        self.context = context

    def evaluate(self, expression: Any, context: Any = None) -> Any:
        if not isinstance(expression, str) or "${" not in expression:
            return expression

        scope = _to_scope(self.context if context is None else context)
        stripped = expression.strip()
        if stripped.startswith("${") and stripped.endswith("}") and stripped.count("${") == 1:
            return self.evaluate_expression(stripped[2:-1], scope)

        return _TEMPLATE_RE.sub(
            lambda match: to_text(self.evaluate_expression(match.group(1), scope)),
            expression,
        )

    def evaluate_expression(self, source: str, scope: Optional[Dict[str, Any]] = None) -> Any:
        """Evaluate a bare expression (no `${}` wrapper).

        Raises:
            ExpressionError: On syntax errors or disallowed constructs
        """
        source = source.strip()
        if not source:
            return None
        if scope is None:
            scope = _to_scope(self.context)

        try:
            tree = ast.parse(translate(source).strip(), mode="eval")
        except SyntaxError as e:
            raise ExpressionError(f"Invalid expression '{source}': {e.msg}") from e

        logger.debug("Evaluating expression", expression=source)
        return _Interpreter(scope).visit(tree)

    def evaluate_condition(self, condition: Any, context: Any = None) -> bool:
        """Evaluate a condition; absent conditions pass."""
        if isinstance(condition, bool):
            return condition
        if not condition:
            return True
        return bool(self.evaluate(condition, context))


def evaluate_expression(expression: Any, context: Any = None) -> Any:
    """Evaluate a template once against the given context."""
    return ExpressionEvaluator(context).evaluate(expression)
