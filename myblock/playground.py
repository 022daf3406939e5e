"""UI-facing playground session: the single current-sprite slot and output text."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from myblock.errors import PlaygroundBusyError
from myblock.executor import Program, ProgramExecutor, ProgramRun, RunResult
from myblock.samples import STARTER_PROGRAM, SampleProgram, get_sample
from myblock.sprite_model import SpriteState, fresh_sprite_state

logger = logging.getLogger(__name__)

READY_MESSAGE = "Ready to run your program."
RUNNING_MESSAGE = "Running..."
RESET_MESSAGE = "Workspace reset to starter project."


class Playground:
    """Holds what a stage view shows between runs.

    Only one run may be in flight. Its results are committed only while it
    is still the active run; :meth:`reset` abandons it, so late results are
    discarded. The lock is never held across an ``await``.
    """

    def __init__(self, executor: Optional[ProgramExecutor] = None):
        self.executor = executor or ProgramExecutor()
        self._lock = threading.Lock()
        self._sprite: SpriteState = fresh_sprite_state()
        self._output = READY_MESSAGE
        self._source = STARTER_PROGRAM
        self._active: Optional[ProgramRun] = None
        self._last_result: Optional[RunResult] = None

    @property
    def sprite(self) -> SpriteState:
        with self._lock:
            return self._sprite.copy()

    @property
    def output(self) -> str:
        with self._lock:
            return self._output

    @property
    def source(self) -> str:
        with self._lock:
            return self._source

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._active is not None

    @property
    def last_result(self) -> Optional[RunResult]:
        with self._lock:
            return self._last_result

    def set_source(self, source: str) -> None:
        with self._lock:
            self._ensure_idle()
            self._source = source

    def load_sample(self, title: str) -> SampleProgram:
        sample = get_sample(title)
        with self._lock:
            self._ensure_idle()
            self._source = sample.source
            self._output = f"Loaded sample: {sample.title}"
        return sample

    def reset(self) -> None:
        with self._lock:
            if self._active is not None:
                logger.info("Abandoning run %s on reset", self._active.run_id)
                self._active.abandon()
                self._active = None
            self._source = STARTER_PROGRAM
            self._sprite = fresh_sprite_state()
            self._output = RESET_MESSAGE

    async def run(self, program: Optional[Program] = None) -> RunResult:
        """Execute ``program`` (or the current source) and commit its outcome.

        Raises:
            PlaygroundBusyError: If another run is still in flight.
        """
        with self._lock:
            self._ensure_idle()
            if program is None:
                program = self._source
            elif isinstance(program, str):
                self._source = program
            run = self.executor.start(program)
            self._active = run
            self._output = RUNNING_MESSAGE

        try:
            result = await run.execute()
        except BaseException:
            # Cancellation of the awaiting task must not leave the slot busy.
            with self._lock:
                if self._active is run:
                    self._active = None
            raise

        with self._lock:
            if self._active is None or self._active.run_id != run.run_id:
                logger.info("Discarding result of abandoned run %s", run.run_id)
                return result
            self._active = None
            self._last_result = result
            if result.ok and result.snapshot is not None:
                self._sprite = result.snapshot
            self._output = result.output
        return result

    def _ensure_idle(self) -> None:
        if self._active is not None:
            raise PlaygroundBusyError(
                f"Run {self._active.run_id} is still in progress."
            )
