"""Restricted evaluator for diagram scripts.

Scripts use a small, loop-bounded subset of Python syntax::

    draw_column_headers()
    for i in range(4):
        draw_box(i, "box-related")
    next_row()
    draw_bottom()

There is no attribute access, no ``while``, no function definitions and no
imports, so a script can only reach the drawing primitives and the handful of
builtins bound below. Every loop walks an already-built finite value and a
step budget bounds the total work.
"""
from __future__ import annotations

import ast
import itertools
import operator
import re
from collections.abc import Sized
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import svg
from .diagram import GEOMETRY_FIELDS, Diagram
from .errors import BytefieldError, ScriptError

DEFAULT_MAX_STEPS = 100_000
MAX_SEQUENCE_LENGTH = 100_000
MAX_EXPONENT = 64
MAX_SHIFT = 1024
MAX_INT_BITS = 4096

_SEQUENCE_TYPES = (str, list, tuple)

# [[fill]align][sign][z][#][0][width][grouping][.precision][type]
_FORMAT_SPEC_RE = re.compile(
    r"(?:.?[<>=^])?[-+ ]?z?#?0?(?P<width>\d*)[,_]?(?:\.(?P<precision>\d*))?", re.DOTALL
)

_BIN_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.LShift: operator.lshift,
    ast.RShift: operator.rshift,
    ast.BitOr: operator.or_,
    ast.BitXor: operator.xor,
    ast.BitAnd: operator.and_,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
    ast.Invert: operator.invert,
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


class _Break(Exception):
    pass


class _Continue(Exception):
    pass


def _bounded_range(*args: int) -> range:
    result = range(*args)
    if len(result) > MAX_SEQUENCE_LENGTH:
        raise ScriptError(f"range of {len(result)} items exceeds limit of {MAX_SEQUENCE_LENGTH}")
    return result


def _check_format_spec(spec: str) -> None:
    match = _FORMAT_SPEC_RE.match(spec)
    for field in ("width", "precision"):
        digits = match.group(field) if match else None
        if digits and int(digits) > MAX_SEQUENCE_LENGTH:
            raise ScriptError(
                f"format {field} {int(digits)} exceeds limit of {MAX_SEQUENCE_LENGTH}"
            )


def _bounded_format(value: Any, format_spec: str = "") -> str:
    if isinstance(format_spec, str):
        _check_format_spec(format_spec)
    return format(value, format_spec)


SAFE_BUILTINS: Dict[str, Any] = {
    "abs": abs,
    "bool": bool,
    "dict": dict,
    "enumerate": enumerate,
    "float": float,
    "format": _bounded_format,
    "hex": hex,
    "int": int,
    "len": len,
    "list": list,
    "max": max,
    "min": min,
    "range": _bounded_range,
    "reversed": reversed,
    "round": round,
    "set": set,
    "sorted": sorted,
    "str": str,
    "tuple": tuple,
    "zip": zip,
}


def diagram_bindings(diagram: Diagram) -> Dict[str, Any]:
    """Functions a script may call, bound to ``diagram``."""
    return {
        "register_attrs": diagram.register_attrs,
        "append_scene": diagram.append_scene,
        "draw_column_headers": diagram.draw_column_headers,
        "draw_row_header": diagram.draw_row_header,
        "draw_line": diagram.draw_line,
        "next_row": diagram.next_row,
        "hex_label": diagram.hex_label,
        "draw_box": diagram.draw_box,
        "draw_group_label_header": diagram.draw_group_label_header,
        "draw_gap": diagram.draw_gap,
        "draw_bottom": diagram.draw_bottom,
        "build_label": diagram.build_label,
        "build_span": diagram.build_span,
        "svg_line": svg.line,
        "svg_rect": svg.rect,
        "svg_circle": svg.circle,
        "svg_ellipse": svg.ellipse,
        "svg_path": svg.path,
        "svg_polygon": svg.polygon,
        "svg_text": svg.text,
        "svg_tspan": svg.tspan,
        "svg_group": svg.group,
        "merge_attrs": svg.merge_attrs,
        "add_attrs": svg.add_attrs,
        "get_attrs": svg.get_attrs,
        "get_content": svg.get_content,
        "set_content": svg.set_content,
        "add_content": svg.add_content,
    }


class ScriptRunner:
    """Executes one script against one diagram."""

    def __init__(self, diagram: Diagram, *, max_steps: int = DEFAULT_MAX_STEPS) -> None:
        self.diagram = diagram
        self.max_steps = max_steps
        self.steps = 0
        self.variables: Dict[str, Any] = {}
        self.bindings = diagram_bindings(diagram)
        self._line: Optional[int] = None
        self._column: Optional[int] = None

    def run(self, source: str) -> None:
        try:
            tree = ast.parse(source, mode="exec")
        except SyntaxError as exc:
            raise ScriptError(
                f"invalid script syntax: {exc.msg}", line=exc.lineno, column=exc.offset
            ) from exc
        try:
            self._exec_block(tree.body)
        except (_Break, _Continue):
            raise ScriptError("break or continue outside of a loop", line=self._line) from None
        except BytefieldError:
            raise
        except (ArithmeticError, LookupError, MemoryError, TypeError, ValueError) as exc:
            raise ScriptError(
                f"{exc.__class__.__name__}: {exc}", line=self._line, column=self._column
            ) from exc

    # Statements.

    def _exec_block(self, body: Iterable[ast.stmt]) -> None:
        for stmt in body:
            self._exec(stmt)

    def _exec(self, node: ast.stmt) -> None:
        self._tick(node)
        if isinstance(node, ast.Expr):
            self._eval(node.value)
        elif isinstance(node, ast.Assign):
            value = self._eval(node.value)
            for target in node.targets:
                self._assign(target, value)
        elif isinstance(node, ast.AugAssign):
            current = self._eval(self._load_target(node.target))
            self._assign(node.target, self._binop(node.op, current, self._eval(node.value)))
        elif isinstance(node, ast.If):
            self._exec_block(node.body if self._eval(node.test) else node.orelse)
        elif isinstance(node, ast.For):
            self._exec_for(node)
        elif isinstance(node, ast.Pass):
            pass
        elif isinstance(node, ast.Break):
            raise _Break()
        elif isinstance(node, ast.Continue):
            raise _Continue()
        else:
            raise self._forbidden(node)

    def _exec_for(self, node: ast.For) -> None:
        iterable = self._eval(node.iter)
        if isinstance(iterable, Sized) and len(iterable) > MAX_SEQUENCE_LENGTH:
            raise self._error(f"loop over {len(iterable)} items exceeds limit", node)
        items = list(itertools.islice(iterable, MAX_SEQUENCE_LENGTH + 1))
        if len(items) > MAX_SEQUENCE_LENGTH:
            raise self._error(f"loop over more than {MAX_SEQUENCE_LENGTH} items exceeds limit", node)
        for item in items:
            self._assign(node.target, item)
            try:
                self._exec_block(node.body)
            except _Break:
                return
            except _Continue:
                continue
        self._exec_block(node.orelse)

    def _assign(self, target: ast.expr, value: Any) -> None:
        if isinstance(target, ast.Name):
            self._store_name(target, value)
        elif isinstance(target, (ast.Tuple, ast.List)):
            values = list(value)
            if len(values) != len(target.elts):
                raise self._error(
                    f"cannot unpack {len(values)} values into {len(target.elts)} names", target
                )
            for elt, item in zip(target.elts, values):
                self._assign(elt, item)
        elif isinstance(target, ast.Subscript):
            container = self._eval(target.value)
            container[self._eval(target.slice)] = value
        else:
            raise self._forbidden(target)

    def _load_target(self, target: ast.expr) -> ast.expr:
        if isinstance(target, ast.Name):
            return ast.copy_location(ast.Name(id=target.id, ctx=ast.Load()), target)
        if isinstance(target, ast.Subscript):
            return ast.copy_location(
                ast.Subscript(value=target.value, slice=target.slice, ctx=ast.Load()), target
            )
        raise self._forbidden(target)

    def _store_name(self, node: ast.Name, value: Any) -> None:
        name = self._check_name(node)
        if name in GEOMETRY_FIELDS:
            setattr(self.diagram.state, name, value)
        elif name in self.bindings or name in SAFE_BUILTINS:
            raise self._error(f"cannot rebind built-in name {name!r}", node)
        else:
            self.variables[name] = value

    # Expressions.

    def _eval(self, node: ast.expr) -> Any:
        self._tick(node)
        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.Name):
            return self._lookup(node)
        if isinstance(node, ast.List):
            return self._eval_elements(node.elts)
        if isinstance(node, ast.Tuple):
            return tuple(self._eval_elements(node.elts))
        if isinstance(node, ast.Set):
            return set(self._eval_elements(node.elts))
        if isinstance(node, ast.Dict):
            result: Dict[Any, Any] = {}
            for key, value in zip(node.keys, node.values):
                if key is None:
                    result.update(self._eval(value))
                else:
                    result[self._eval(key)] = self._eval(value)
            return result
        if isinstance(node, ast.BinOp):
            return self._binop(node.op, self._eval(node.left), self._eval(node.right))
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand))
        if isinstance(node, ast.BoolOp):
            return self._boolop(node)
        if isinstance(node, ast.Compare):
            return self._compare(node)
        if isinstance(node, ast.IfExp):
            return self._eval(node.body) if self._eval(node.test) else self._eval(node.orelse)
        if isinstance(node, ast.Subscript):
            return self._eval(node.value)[self._eval(node.slice)]
        if isinstance(node, ast.Slice):
            return slice(
                self._eval(node.lower) if node.lower is not None else None,
                self._eval(node.upper) if node.upper is not None else None,
                self._eval(node.step) if node.step is not None else None,
            )
        if isinstance(node, ast.Call):
            return self._call(node)
        if isinstance(node, ast.JoinedStr):
            parts: List[str] = []
            total = 0
            for value in node.values:
                part = str(self._eval(value))
                total += len(part)
                self._check_length(total)
                parts.append(part)
            return "".join(parts)
        if isinstance(node, ast.FormattedValue):
            return self._formatted(node)
        raise self._forbidden(node)

    def _eval_elements(self, elts: List[ast.expr]) -> List[Any]:
        values: List[Any] = []
        for elt in elts:
            if isinstance(elt, ast.Starred):
                items = self._eval(elt.value)
                if isinstance(items, Sized):
                    self._check_length(len(values) + len(items))
                values.extend(items)
            else:
                values.append(self._eval(elt))
        return values

    def _lookup(self, node: ast.Name) -> Any:
        name = self._check_name(node)
        if name in self.variables:
            return self.variables[name]
        if name in GEOMETRY_FIELDS:
            return getattr(self.diagram.state, name)
        if name in self.bindings:
            return self.bindings[name]
        if name in SAFE_BUILTINS:
            return SAFE_BUILTINS[name]
        raise self._error(f"name {name!r} is not defined", node)

    def _check_name(self, node: ast.Name) -> str:
        if node.id.startswith("__"):
            raise self._error(f"name {node.id!r} is not allowed", node)
        return node.id

    def _binop(self, op: ast.operator, left: Any, right: Any) -> Any:
        func = _BIN_OPS.get(type(op))
        if func is None:
            raise ScriptError(f"operator {op.__class__.__name__} is not allowed", line=self._line)
        if isinstance(op, ast.Pow) and isinstance(right, (int, float)):
            if abs(right) > MAX_EXPONENT:
                raise ScriptError(
                    f"exponent {right} exceeds limit of {MAX_EXPONENT}", line=self._line
                )
            if isinstance(left, int) and isinstance(right, int) and right > 0:
                self._check_bits(left.bit_length() * right)
        elif isinstance(op, ast.LShift) and isinstance(right, int):
            if right > MAX_SHIFT:
                raise ScriptError(
                    f"shift of {right} bits exceeds limit of {MAX_SHIFT}", line=self._line
                )
            if isinstance(left, int) and right > 0:
                self._check_bits(left.bit_length() + right)
        elif isinstance(op, ast.Mult):
            if isinstance(left, int) and isinstance(right, int):
                self._check_bits(left.bit_length() + right.bit_length())
            self._check_repeat(left, right)
            self._check_repeat(right, left)
        elif isinstance(op, ast.Add):
            if isinstance(left, _SEQUENCE_TYPES) and isinstance(right, _SEQUENCE_TYPES):
                self._check_length(len(left) + len(right))
        return func(left, right)

    def _check_repeat(self, sequence: Any, count: Any) -> None:
        if isinstance(sequence, _SEQUENCE_TYPES) and isinstance(count, int):
            self._check_length(len(sequence) * count)

    def _check_length(self, length: int) -> None:
        if length > MAX_SEQUENCE_LENGTH:
            raise ScriptError(
                f"result of {length} items exceeds limit of {MAX_SEQUENCE_LENGTH}", line=self._line
            )

    def _check_bits(self, bits: int) -> None:
        if bits > MAX_INT_BITS:
            raise ScriptError(
                f"integer result of about {bits} bits exceeds limit of {MAX_INT_BITS}",
                line=self._line,
            )

    def _boolop(self, node: ast.BoolOp) -> Any:
        value: Any = None
        for operand in node.values:
            value = self._eval(operand)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def _compare(self, node: ast.Compare) -> bool:
        left = self._eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self._eval(comparator)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True

    def _call(self, node: ast.Call) -> Any:
        func = self._eval(node.func)
        if not callable(func):
            raise self._error(f"{func!r} is not callable", node)
        args = self._eval_elements(node.args)
        kwargs: Dict[str, Any] = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                kwargs.update(self._eval(keyword.value))
            else:
                kwargs[keyword.arg] = self._eval(keyword.value)
        return func(*args, **kwargs)

    def _formatted(self, node: ast.FormattedValue) -> str:
        value = self._eval(node.value)
        if node.conversion == ord("r"):
            value = repr(value)
        elif node.conversion == ord("s"):
            value = str(value)
        elif node.conversion == ord("a"):
            value = ascii(value)
        spec = self._eval(node.format_spec) if node.format_spec is not None else ""
        try:
            _check_format_spec(spec)
        except ScriptError as exc:
            raise self._error(str(exc), node) from None
        return format(value, spec)

    # Bookkeeping.

    def _tick(self, node: ast.AST) -> None:
        if isinstance(node, ast.stmt):
            self._line = node.lineno
            self._column = node.col_offset + 1
        self.steps += 1
        if self.steps > self.max_steps:
            raise ScriptError(
                f"script exceeded the limit of {self.max_steps} evaluation steps", line=self._line
            )

    def _forbidden(self, node: ast.AST) -> ScriptError:
        return self._error(f"{node.__class__.__name__} is not allowed in diagram scripts", node)

    def _error(self, message: str, node: ast.AST) -> ScriptError:
        line = getattr(node, "lineno", self._line)
        col = getattr(node, "col_offset", None)
        return ScriptError(message, line=line, column=col + 1 if col is not None else None)


def run_script(diagram: Diagram, source: str, *, max_steps: int = DEFAULT_MAX_STEPS) -> Diagram:
    ScriptRunner(diagram, max_steps=max_steps).run(source)
    return diagram


__all__ = ["DEFAULT_MAX_STEPS", "SAFE_BUILTINS", "ScriptRunner", "diagram_bindings", "run_script"]
