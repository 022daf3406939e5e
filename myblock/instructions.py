from dataclasses import dataclass
from typing import Any, List


class Instruction:
    pass


@dataclass(frozen=True)
class Move(Instruction):
    steps: Any


@dataclass(frozen=True)
class Turn(Instruction):
    degrees: Any


@dataclass(frozen=True)
class Say(Instruction):
    message: Any


@dataclass(frozen=True)
class Wait(Instruction):
    seconds: Any


@dataclass(frozen=True)
class Repeat(Instruction):
    times: Any
    body: List[Instruction]


@dataclass(frozen=True)
class Sequence(Instruction):
    body: List[Instruction]


@dataclass(frozen=True)
class Fail(Instruction):
    message: str


OPERATION_NAMES = ("move", "turn", "say", "wait")
