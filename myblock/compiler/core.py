import ast
import warnings
from typing import Any, Callable, FrozenSet, List, Optional

from myblock.errors import (
    ProgramValidationError,
    program_node_context,
    program_source_context,
    with_location,
)
from myblock.instructions import (
    OPERATION_NAMES,
    Fail,
    Instruction,
    Move,
    Repeat,
    Say,
    Turn,
    Wait,
)

from .constants import (
    RUNTIME_HANDLE_NAME,
    _ALLOWED_BIN,
    _ALLOWED_UNARY,
    _FLOAT_LITERALS,
)
from .helpers import _format_syntax_error, _is_docstring_expr, _parse_program_module

_OPERATIONS = {
    "move": Move,
    "turn": Turn,
    "say": Say,
    "wait": Wait,
}

_MAX_EXPONENT = 1024
_MAX_INT_BITS = 4096
_MAX_STRING_LENGTH = 10_000


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_folded_size(op: ast.operator, left: Any, right: Any) -> None:
    """Reject folds whose result would be huge before computing them."""
    if isinstance(op, ast.Pow):
        if isinstance(right, (int, float)) and abs(right) > _MAX_EXPONENT:
            raise ProgramValidationError("Exponent is too large.")
        if _is_int(left) and _is_int(right) and right > 0:
            if left.bit_length() * right > _MAX_INT_BITS:
                raise ProgramValidationError("Constant value is too large.")
        return

    if isinstance(op, ast.Mod) and isinstance(left, str):
        raise ProgramValidationError("String formatting is not supported.")
    if not isinstance(op, ast.Mult):
        return
    if isinstance(left, str) and isinstance(right, int):
        text, count = left, right
    elif isinstance(right, str) and isinstance(left, int):
        text, count = right, left
    elif _is_int(left) and _is_int(right):
        if left.bit_length() + right.bit_length() > _MAX_INT_BITS:
            raise ProgramValidationError("Constant value is too large.")
        return
    else:
        return
    if len(text) * max(count, 0) > _MAX_STRING_LENGTH:
        raise ProgramValidationError("String constant is too long.")


class ProgramCompiler:
    def __init__(self, handle_name: str = RUNTIME_HANDLE_NAME):
        """Create a compiler for programs that call operations on ``handle_name``."""
        self.handle_name = handle_name

    def compile(self, source: str) -> List[Instruction]:
        """Compile program text into a flat list of top-level instructions.

        Raises:
            ProgramValidationError: If the text is not valid Python or uses a
                construct outside the supported operation vocabulary.
        """
        with program_source_context(source):
            try:
                module = _parse_program_module(source)
            except SyntaxError as exc:
                raise ProgramValidationError(_format_syntax_error(exc, source)) from exc

            instructions = self._compile_block(module.body, frozenset())
            if not instructions:
                warnings.warn(
                    "Program contains no runtime operations; running it only reports "
                    "the initial sprite state.",
                    stacklevel=2,
                )
            return instructions

    def _compile_block(
        self, stmts: List[ast.stmt], loop_vars: FrozenSet[str]
    ) -> List[Instruction]:
        out: List[Instruction] = []
        for stmt in stmts:
            compiled = self._compile_stmt(stmt, loop_vars)
            if compiled is not None:
                out.append(compiled)
        return out

    def _compile_stmt(
        self, stmt: ast.stmt, loop_vars: FrozenSet[str]
    ) -> Optional[Instruction]:
        with program_node_context(stmt):
            if _is_docstring_expr(stmt) or isinstance(stmt, ast.Pass):
                return None

            if isinstance(stmt, ast.Expr):
                value = stmt.value
                if isinstance(value, ast.Await):
                    value = value.value
                if isinstance(value, ast.Call):
                    return self._compile_operation_call(value, loop_vars)
                raise ProgramValidationError(
                    "Only runtime operation calls are allowed as expression statements."
                )

            if isinstance(stmt, ast.For):
                return self._compile_for(stmt, loop_vars)

            if isinstance(stmt, ast.Raise):
                return self._compile_raise(stmt, loop_vars)

            raise ProgramValidationError(f"Unsupported statement: {type(stmt).__name__}")

    def _compile_operation_call(
        self, call: ast.Call, loop_vars: FrozenSet[str]
    ) -> Instruction:
        func = call.func
        if not (isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name)):
            raise ProgramValidationError(
                f"Unsupported call statement. Programs may only call "
                f"{self.handle_name}.<operation>(...)."
            )

        owner = func.value.id
        method = func.attr
        if owner != self.handle_name:
            raise ProgramValidationError(
                f"Unknown runtime handle '{owner}'. "
                f"Operations must be called on '{self.handle_name}'."
            )
        if method not in _OPERATIONS:
            raise ProgramValidationError(
                f"Unsupported runtime operation '{owner}.{method}(...)'. "
                f"Supported operations: {', '.join(OPERATION_NAMES)}."
            )
        if call.keywords:
            raise ProgramValidationError(
                f"{owner}.{method}(...) does not accept keyword arguments."
            )
        if len(call.args) != 1:
            raise ProgramValidationError(
                f"{owner}.{method}(...) expects exactly one argument."
            )
        return _OPERATIONS[method](self._eval_constant(call.args[0], loop_vars))

    def _compile_for(self, stmt: ast.For, loop_vars: FrozenSet[str]) -> Repeat:
        if stmt.orelse:
            raise ProgramValidationError("for-else is not supported.")
        if not isinstance(stmt.target, ast.Name):
            raise ProgramValidationError("for loop target must be a simple name.")

        times = self._compile_repeat_count(stmt.iter, loop_vars)
        body = self._compile_block(stmt.body, loop_vars | {stmt.target.id})
        if times == 0:
            warnings.warn(
                with_location(
                    "Loop body never executes because its range is empty.", stmt
                ),
                stacklevel=3,
            )
        return Repeat(times=times, body=body)

    def _compile_repeat_count(self, node: ast.AST, loop_vars: FrozenSet[str]) -> int:
        with program_node_context(node):
            if not (
                isinstance(node, ast.Call)
                and isinstance(node.func, ast.Name)
                and node.func.id == "range"
            ):
                raise ProgramValidationError(
                    "for loops must iterate over range(...) with constant bounds."
                )
            if node.keywords:
                raise ProgramValidationError("range(...) does not accept keyword arguments.")
            if not 1 <= len(node.args) <= 3:
                raise ProgramValidationError("range(...) expects one to three arguments.")

            bounds = [self._eval_constant(arg, loop_vars) for arg in node.args]
            for bound in bounds:
                if isinstance(bound, bool) or not isinstance(bound, int):
                    raise ProgramValidationError(
                        "range(...) arguments must be integer constants."
                    )
            if len(bounds) == 3 and bounds[2] == 0:
                raise ProgramValidationError("range(...) step must not be zero.")
            return len(range(*bounds))

    def _compile_raise(self, stmt: ast.Raise, loop_vars: FrozenSet[str]) -> Fail:
        exc = stmt.exc
        if exc is None:
            raise ProgramValidationError("Bare 'raise' is not supported.")
        if isinstance(exc, ast.Name):
            return Fail(message=exc.id)
        if isinstance(exc, ast.Call) and isinstance(exc.func, ast.Name):
            if exc.keywords or len(exc.args) > 1:
                raise ProgramValidationError(
                    f"raise {exc.func.id}(...) accepts at most one message argument."
                )
            if not exc.args:
                return Fail(message=exc.func.id)
            return Fail(message=str(self._eval_constant(exc.args[0], loop_vars)))
        raise ProgramValidationError("raise must name an exception, e.g. raise RuntimeError('...').")

    def _eval_constant(self, node: ast.AST, loop_vars: FrozenSet[str]) -> Any:
        with program_node_context(node):
            if isinstance(node, ast.Constant):
                if isinstance(node.value, (int, float, str)):
                    return node.value
                raise ProgramValidationError(f"Unsupported constant value: {node.value!r}")

            if isinstance(node, ast.UnaryOp):
                op = _ALLOWED_UNARY.get(type(node.op))
                if op is None:
                    raise ProgramValidationError(
                        f"Unsupported unary operator: {type(node.op).__name__}"
                    )
                return self._apply(op, self._eval_constant(node.operand, loop_vars))

            if isinstance(node, ast.BinOp):
                op = _ALLOWED_BIN.get(type(node.op))
                if op is None:
                    raise ProgramValidationError(
                        f"Unsupported binary operator: {type(node.op).__name__}"
                    )
                left = self._eval_constant(node.left, loop_vars)
                right = self._eval_constant(node.right, loop_vars)
                _check_folded_size(node.op, left, right)
                result = self._apply(op, left, right)
                if isinstance(result, complex):
                    raise ProgramValidationError(
                        "Invalid constant expression: result is not a real number."
                    )
                if isinstance(result, str) and len(result) > _MAX_STRING_LENGTH:
                    raise ProgramValidationError("String constant is too long.")
                return result

            if isinstance(node, ast.Call):
                return self._eval_float_literal(node)

            if isinstance(node, ast.Name):
                if node.id in loop_vars:
                    raise ProgramValidationError(
                        f"Loop variable '{node.id}' cannot be used in operation arguments."
                    )
                raise ProgramValidationError(f"Unknown variable '{node.id}'.")

            raise ProgramValidationError(f"Unsupported expression: {type(node).__name__}")

    def _eval_float_literal(self, node: ast.Call) -> float:
        if not (
            isinstance(node.func, ast.Name)
            and node.func.id == "float"
            and len(node.args) == 1
            and not node.keywords
            and isinstance(node.args[0], ast.Constant)
            and isinstance(node.args[0].value, str)
            and node.args[0].value.strip().lower() in _FLOAT_LITERALS
        ):
            raise ProgramValidationError(
                "Function calls are not allowed in operation arguments "
                "(only float('nan') and float('inf') literals)."
            )
        return float(node.args[0].value)

    @staticmethod
    def _apply(op: Callable[..., Any], *args: Any) -> Any:
        try:
            return op(*args)
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise ProgramValidationError(f"Invalid constant expression: {exc}") from exc
