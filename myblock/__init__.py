"""Public Python API for MyBlock Studio.

The package exposes a small stable surface: compile program text into
instructions, run it against a fresh stage, and serve a playground over HTTP.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from myblock.compiler import ProgramCompiler
from myblock.errors import (
    PlaygroundBusyError,
    ProgramError,
    ProgramFault,
    ProgramValidationError,
)
from myblock.executor import ProgramExecutor, RunResult, RunStatus
from myblock.exporter import (
    export_run,
    instructions_from_dict,
    instructions_to_dict,
    result_to_dict,
    snapshot_to_dict,
)
from myblock.instructions import Fail, Move, Repeat, Say, Sequence, Turn, Wait
from myblock.mcp_bridge import MyBlockHTTPClient, build_fastmcp_from_http
from myblock.playground import Playground
from myblock.py_generator import ProgramGenerator
from myblock.sprite_model import DEFAULT_STAGE_CONFIG, SpriteState, StageConfig
from myblock.stage_runtime import StageRuntime

try:
    __version__: str = version("myblock-studio")
except PackageNotFoundError:  # pragma: no cover - editable local fallback
    __version__ = "0.1.0"


def about(*, print_output: bool = True) -> str:
    """Return and optionally print the runtime semantic contract.

    Args:
        print_output: Whether to print the returned summary.

    Returns:
        Human-readable semantic summary string.

    Example:
        >>> from myblock import about
        >>> text = about(print_output=False)
        >>> "Coordinate system" in text
        True
    """
    config = DEFAULT_STAGE_CONFIG
    text = (
        f"MyBlock Studio {__version__}\n"
        f"Coordinate system: origin at stage center, stage {config.width:g}x{config.height:g}, "
        "positions clamped to the stage edges.\n"
        "Heading: degrees, 90 faces up, positive turns rotate right (clockwise).\n"
        f"Units: one step moves {config.step_scale:g} stage units; one program second "
        f"waits {config.wait_scale:g} real seconds.\n"
        "Operations: move(steps), turn(degrees), say(message), wait(seconds), run in program order.\n"
        "Failures: a run either completes with a snapshot and log, or returns only an error."
    )
    if print_output:
        print(text)
    return text


__all__ = [
    "__version__",
    "about",
    "DEFAULT_STAGE_CONFIG",
    "Fail",
    "Move",
    "MyBlockHTTPClient",
    "Playground",
    "PlaygroundBusyError",
    "ProgramCompiler",
    "ProgramError",
    "ProgramExecutor",
    "ProgramFault",
    "ProgramGenerator",
    "ProgramValidationError",
    "Repeat",
    "RunResult",
    "RunStatus",
    "Say",
    "Sequence",
    "SpriteState",
    "StageConfig",
    "StageRuntime",
    "Turn",
    "Wait",
    "build_fastmcp_from_http",
    "export_run",
    "instructions_from_dict",
    "instructions_to_dict",
    "result_to_dict",
    "snapshot_to_dict",
]
