import math
from typing import Any, List, Sequence

from myblock.compiler import RUNTIME_HANDLE_NAME
from myblock.errors import ProgramValidationError
from myblock.executor import repeat_count
from myblock.instructions import (
    Fail,
    Instruction,
    Move,
    Repeat,
    Say,
    Sequence as SequenceInstruction,
    Turn,
    Wait,
)


class ProgramGenerator:
    def __init__(self, handle_name: str = RUNTIME_HANDLE_NAME):
        self.handle_name = handle_name

    def generate(self, instructions: Sequence[Instruction]) -> str:
        lines: List[str] = []
        for instruction in instructions:
            lines.extend(self._emit(instruction, 0, 0))
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def _emit(self, instruction: Instruction, indent: int, loop_depth: int) -> List[str]:
        pad = "    " * indent

        if isinstance(instruction, Move):
            return [pad + self._emit_call("move", instruction.steps)]
        if isinstance(instruction, Turn):
            return [pad + self._emit_call("turn", instruction.degrees)]
        if isinstance(instruction, Say):
            return [pad + self._emit_call("say", instruction.message)]
        if isinstance(instruction, Wait):
            return [pad + self._emit_call("wait", instruction.seconds)]

        if isinstance(instruction, Repeat):
            # Nested loops need distinct names to stay readable.
            var = "_" if loop_depth == 0 else f"_{loop_depth}"
            lines = [pad + f"for {var} in range({repeat_count(instruction.times)}):"]
            body: List[str] = []
            for child in instruction.body:
                body.extend(self._emit(child, indent + 1, loop_depth + 1))
            lines.extend(body or [pad + "    pass"])
            return lines

        if isinstance(instruction, SequenceInstruction):
            lines = []
            for child in instruction.body:
                lines.extend(self._emit(child, indent, loop_depth))
            return lines

        if isinstance(instruction, Fail):
            return [pad + f"raise RuntimeError({instruction.message!r})"]

        raise ProgramValidationError(
            f"Unsupported instruction: {type(instruction).__name__}"
        )

    def _emit_call(self, operation: str, value: Any) -> str:
        return f"await {self.handle_name}.{operation}({self._emit_value(value)})"

    def _emit_value(self, value: Any) -> str:
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, str):
            return repr(value)
        if isinstance(value, float):
            if math.isnan(value):
                return "float('nan')"
            if math.isinf(value):
                return "float('inf')" if value > 0 else "-float('inf')"
            return repr(value)
        if isinstance(value, int):
            return repr(value)
        raise ProgramValidationError(f"Unsupported constant value: {value!r}")
