import asyncio
import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from myblock.compiler import ProgramCompiler
from myblock.errors import ProgramValidationError
from myblock.executor import ProgramExecutor, RunResult
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
from myblock.py_generator import ProgramGenerator
from myblock.sprite_model import DEFAULT_STAGE_CONFIG, SpriteState, StageConfig
from myblock.stage_runtime import format_number

_PAYLOAD_FIELDS = {
    "move": (Move, "steps"),
    "turn": (Turn, "degrees"),
    "say": (Say, "message"),
    "wait": (Wait, "seconds"),
}
_NUMERIC_FIELDS = frozenset({"steps", "degrees", "seconds", "times"})
_NON_FINITE = {
    "NaN": math.nan,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
}


def json_value(value: Any) -> Any:
    """Spell NaN and infinities as strings so payloads stay strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return format_number(value)
    return value


def _numeric_from_json(value: Any) -> Any:
    if isinstance(value, str) and value in _NON_FINITE:
        return _NON_FINITE[value]
    return value


def dumps(payload: Any, **kwargs: Any) -> str:
    """``json.dumps`` that refuses bare NaN/Infinity tokens."""
    return json.dumps(payload, allow_nan=False, **kwargs)


def snapshot_to_dict(state: SpriteState) -> Dict[str, Any]:
    """Serialize a sprite snapshot into the rendering payload."""
    return {
        "x": json_value(state.x),
        "y": json_value(state.y),
        "direction": json_value(state.direction),
        "speech": json_value(state.speech),
        "trail": [
            {"x": json_value(point.x), "y": json_value(point.y)} for point in state.trail
        ],
    }


def result_to_dict(result: RunResult) -> Dict[str, Any]:
    return {
        "run_id": result.run_id,
        "status": result.status.value,
        "output": result.output,
        "log": result.log,
        "snapshot": snapshot_to_dict(result.snapshot) if result.snapshot is not None else None,
        "error": result.error,
    }


def instructions_to_dict(instructions: Sequence[Instruction]) -> List[Dict[str, Any]]:
    """Serialize instructions into their tagged JSON form."""
    return [_instruction_to_dict(instruction) for instruction in instructions]


def _instruction_to_dict(instruction: Instruction) -> Dict[str, Any]:
    for op, (cls, field_name) in _PAYLOAD_FIELDS.items():
        if isinstance(instruction, cls):
            return {"op": op, field_name: json_value(getattr(instruction, field_name))}
    if isinstance(instruction, Repeat):
        return {
            "op": "repeat",
            "times": json_value(instruction.times),
            "body": instructions_to_dict(instruction.body),
        }
    if isinstance(instruction, SequenceInstruction):
        return {"op": "sequence", "body": instructions_to_dict(instruction.body)}
    if isinstance(instruction, Fail):
        return {"op": "fail", "message": instruction.message}
    raise ProgramValidationError(f"Unsupported instruction: {type(instruction).__name__}")


def instructions_from_dict(payload: Any) -> List[Instruction]:
    """Decode the tagged JSON form produced by :func:`instructions_to_dict`.

    Raises:
        ProgramValidationError: If the payload is not a list of known tagged
            instruction objects.
    """
    if not isinstance(payload, list):
        raise ProgramValidationError("Instruction payload must be a list.")
    return [_instruction_from_dict(item) for item in payload]


def _instruction_from_dict(item: Any) -> Instruction:
    if not isinstance(item, dict):
        raise ProgramValidationError("Each instruction must be a JSON object.")
    op = item.get("op")
    if op in _PAYLOAD_FIELDS:
        cls, field_name = _PAYLOAD_FIELDS[op]
        if field_name not in item:
            raise ProgramValidationError(f"Instruction '{op}' requires '{field_name}'.")
        value = item[field_name]
        if field_name in _NUMERIC_FIELDS:
            value = _numeric_from_json(value)
        return cls(value)
    if op == "repeat":
        if "times" not in item:
            raise ProgramValidationError("Instruction 'repeat' requires 'times'.")
        return Repeat(
            times=_numeric_from_json(item["times"]),
            body=instructions_from_dict(item.get("body", [])),
        )
    if op == "sequence":
        return SequenceInstruction(body=instructions_from_dict(item.get("body", [])))
    if op == "fail":
        return Fail(message=str(item.get("message", "")))
    raise ProgramValidationError(f"Unknown instruction op: {op!r}")


def export_run(
    source: str,
    output_dir: str,
    *,
    config: StageConfig = DEFAULT_STAGE_CONFIG,
    executor: Optional[ProgramExecutor] = None,
) -> RunResult:
    """Compile, execute and write IR, regenerated program and trace to ``output_dir``.

    Compilation errors are raised before anything is written; runtime faults
    are recorded in ``run_result.json``.
    """
    instructions = ProgramCompiler().compile(source)
    executor = executor or ProgramExecutor(config)
    result = asyncio.run(executor.run(instructions))

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    (out_dir / "program_ir.json").write_text(
        dumps(instructions_to_dict(instructions), indent=2),
        encoding="utf-8",
    )
    (out_dir / "program.py").write_text(
        ProgramGenerator().generate(instructions),
        encoding="utf-8",
    )
    (out_dir / "run_result.json").write_text(
        dumps(result_to_dict(result), indent=2, sort_keys=True, ensure_ascii=False),
        encoding="utf-8",
    )
    return result
