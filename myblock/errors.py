"""Error types and the program-location context attached to compile errors."""

import ast
import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional


@dataclass(frozen=True)
class _CompileScope:
    source: Optional[str] = None
    node: Optional[ast.AST] = None


_SCOPE: contextvars.ContextVar[_CompileScope] = contextvars.ContextVar(
    "myblock_compile_scope", default=_CompileScope()
)


def location_block(line: int, column: int, code: Optional[str] = None) -> str:
    """Render the ``Location:``/``Code:`` lines shared by every diagnostic."""
    text = f"Location: line {line}, column {max(column, 1)}"
    if code:
        text += f"\nCode: {code}"
    return text


def _code_for(node: ast.AST, source: Optional[str]) -> Optional[str]:
    if source is None:
        return None
    segment = ast.get_source_segment(source, node)
    if not segment:
        lines = source.splitlines()
        if not 0 < node.lineno <= len(lines):
            return None
        segment = lines[node.lineno - 1]
    return segment.strip() or None


def with_location(message: str, node: Optional[ast.AST] = None) -> str:
    """Append the location of ``node`` (default: the node being compiled)."""
    scope = _SCOPE.get()
    if node is None:
        node = scope.node
    if getattr(node, "lineno", None) is None:
        return message
    block = location_block(node.lineno, node.col_offset + 1, _code_for(node, scope.source))
    return f"{message}\n{block}"


@contextmanager
def _scoped(**changes) -> Iterator[None]:
    token = _SCOPE.set(replace(_SCOPE.get(), **changes))
    try:
        yield
    finally:
        _SCOPE.reset(token)


def program_source_context(source: str):
    return _scoped(source=source, node=None)


def program_node_context(node: ast.AST):
    return _scoped(node=node)


class ProgramError(Exception):
    """Base program error."""


class ProgramValidationError(ProgramError):
    """Raised when program text or an instruction payload is malformed.

    Raised while compiling, the message carries the offending location.
    """

    def __init__(self, message: str):
        super().__init__(with_location(message))


class ProgramFault(ProgramError):
    """Raised by a program that fails on purpose (``raise ...`` in program text)."""


class RunAbandonedError(ProgramError):
    """Raised inside a run that was abandoned while it was still executing."""


class PlaygroundError(Exception):
    """Base playground session error."""


class PlaygroundBusyError(PlaygroundError):
    """Raised when a run is requested while another one is in flight."""
