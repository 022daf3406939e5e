"""Program executor: drives one program against a fresh stage runtime per run."""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Union

from myblock.compiler import ProgramCompiler
from myblock.errors import ProgramFault, ProgramValidationError, RunAbandonedError
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
from myblock.sprite_model import DEFAULT_STAGE_CONFIG, SpriteState, StageConfig
from myblock.stage_runtime import SleepFn, StageRuntime

logger = logging.getLogger(__name__)

Program = Union[str, Sequence[Instruction]]

_RUN_IDS = itertools.count(1)


class RunStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RunResult:
    """Outcome of one run.

    On success ``snapshot`` and ``log`` are set and ``error`` is None. On
    failure only ``error`` is set: state mutated before the failure point is
    never surfaced.
    """

    run_id: int
    status: RunStatus
    snapshot: Optional[SpriteState] = None
    log: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def output(self) -> str:
        if self.ok:
            return self.log or ""
        return f"Error: {self.error}"


def repeat_count(times: Any) -> int:
    """Iterations of ``for (count = 0; count < times; count++)``."""
    if not times > 0:
        return 0
    return math.ceil(times)


def _error_message(exc: BaseException) -> str:
    message = str(exc)
    return message if message else type(exc).__name__


class ProgramRun:
    """One ``Idle -> Running -> Completed | Failed`` execution attempt."""

    def __init__(
        self,
        program: Program,
        *,
        config: StageConfig = DEFAULT_STAGE_CONFIG,
        sleep: Optional[SleepFn] = None,
        compiler: Optional[ProgramCompiler] = None,
        run_id: Optional[int] = None,
    ):
        self.run_id = run_id if run_id is not None else next(_RUN_IDS)
        self.program = program
        self.config = config
        self.status = RunStatus.IDLE
        self.abandoned = False
        self._sleep = sleep
        self._compiler = compiler or ProgramCompiler()
        self.result: Optional[RunResult] = None

    def abandon(self) -> None:
        """Stop the run at its next instruction boundary."""
        self.abandoned = True

    async def execute(self) -> RunResult:
        if self.status != RunStatus.IDLE:
            raise RuntimeError(f"Run {self.run_id} was already started.")
        self.status = RunStatus.RUNNING
        logger.debug("Run %s started", self.run_id)

        try:
            instructions = self._resolve_instructions()
            runtime = StageRuntime(self.config, sleep=self._sleep)
            await self._execute_block(instructions, runtime)
        except Exception as exc:
            self.status = RunStatus.FAILED
            self.result = RunResult(
                run_id=self.run_id,
                status=RunStatus.FAILED,
                error=_error_message(exc),
            )
            logger.warning("Run %s failed: %s", self.run_id, self.result.error)
            return self.result

        history = runtime.log_text()
        report = runtime.report()
        self.status = RunStatus.COMPLETED
        self.result = RunResult(
            run_id=self.run_id,
            status=RunStatus.COMPLETED,
            snapshot=runtime.snapshot(),
            log=f"{history}\n{report}" if history else report,
        )
        logger.debug("Run %s completed: %s", self.run_id, report)
        return self.result

    def _resolve_instructions(self) -> List[Instruction]:
        if isinstance(self.program, str):
            return self._compiler.compile(self.program)
        return list(self.program)

    async def _execute_block(
        self, instructions: Iterable[Instruction], runtime: StageRuntime
    ) -> None:
        for instruction in instructions:
            await self._execute(instruction, runtime)

    async def _execute(self, instruction: Instruction, runtime: StageRuntime) -> None:
        if self.abandoned:
            raise RunAbandonedError(f"Run {self.run_id} was abandoned.")

        if isinstance(instruction, Move):
            await runtime.move(instruction.steps)
            return
        if isinstance(instruction, Turn):
            await runtime.turn(instruction.degrees)
            return
        if isinstance(instruction, Say):
            await runtime.say(instruction.message)
            return
        if isinstance(instruction, Wait):
            await runtime.wait(instruction.seconds)
            return
        if isinstance(instruction, Repeat):
            for _ in range(repeat_count(instruction.times)):
                await self._execute_block(instruction.body, runtime)
            return
        if isinstance(instruction, SequenceInstruction):
            await self._execute_block(instruction.body, runtime)
            return
        if isinstance(instruction, Fail):
            raise ProgramFault(instruction.message)

        raise ProgramValidationError(
            f"Unsupported instruction: {type(instruction).__name__}"
        )


class ProgramExecutor:
    """Runs programs to completion or first failure, one fresh runtime per run.

    Example:
        >>> import asyncio
        >>> result = asyncio.run(ProgramExecutor().run("await runtime.move(10)"))
        >>> result.output.splitlines()[-1]
        'x: 100.0, y: 0.0, direction: 90°'
    """

    def __init__(
        self,
        config: StageConfig = DEFAULT_STAGE_CONFIG,
        *,
        sleep: Optional[SleepFn] = None,
        compiler: Optional[ProgramCompiler] = None,
    ):
        self.config = config
        self.sleep = sleep
        self.compiler = compiler or ProgramCompiler()

    def start(self, program: Program, *, run_id: Optional[int] = None) -> ProgramRun:
        return ProgramRun(
            program,
            config=self.config,
            sleep=self.sleep,
            compiler=self.compiler,
            run_id=run_id,
        )

    async def run(self, program: Program) -> RunResult:
        return await self.start(program).execute()
