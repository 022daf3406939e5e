from __future__ import annotations

import asyncio

import myblock
import pytest

from myblock.errors import ProgramValidationError


def test_public_api_exposes_version_and_about() -> None:
    assert isinstance(myblock.__version__, str)
    text = myblock.about(print_output=False)
    assert "Coordinate system" in text
    assert "320x320" in text


def test_public_api_all_contains_core_exports() -> None:
    exported = set(myblock.__all__)
    assert "ProgramCompiler" in exported
    assert "ProgramExecutor" in exported
    assert "Playground" in exported
    assert "export_run" in exported
    assert "about" in exported
    assert "__version__" in exported


def test_compile_rejects_unsupported_statement_with_location() -> None:
    with pytest.raises(ProgramValidationError, match="Location: line 2"):
        myblock.ProgramCompiler().compile("await runtime.move(1)\nx = 3")


def test_executor_runs_instruction_lists() -> None:
    executor = myblock.ProgramExecutor(myblock.StageConfig(wait_scale=0))
    result = asyncio.run(executor.run([myblock.Move(3), myblock.Say("done")]))
    assert result.status == myblock.RunStatus.COMPLETED
    assert result.snapshot.x == pytest.approx(30.0)
