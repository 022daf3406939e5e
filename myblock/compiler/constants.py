import ast
import operator

RUNTIME_HANDLE_NAME = "runtime"

_ALLOWED_BIN = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_ALLOWED_UNARY = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FLOAT_LITERALS = {"nan", "inf", "-inf", "infinity", "-infinity"}

__all__ = [
    "RUNTIME_HANDLE_NAME",
    "_ALLOWED_BIN",
    "_ALLOWED_UNARY",
    "_FLOAT_LITERALS",
]
