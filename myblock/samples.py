from dataclasses import dataclass
from typing import List

STARTER_PROGRAM = (
    "await runtime.move(10)\n"
    "await runtime.turn(90)\n"
    'await runtime.say("Hello, MyBlock!")\n'
)


@dataclass(frozen=True)
class SampleProgram:
    title: str
    description: str
    source: str


SAMPLE_PROGRAMS: List[SampleProgram] = [
    SampleProgram(
        title="Star Greeting",
        description="Moves forward, turns, and says hello. Matches the starter project.",
        source=STARTER_PROGRAM,
    ),
    SampleProgram(
        title="Square Walk",
        description="Draws a simple square path using a repeat loop.",
        source=(
            "for i in range(4):\n"
            "    await runtime.move(12)\n"
            "    await runtime.turn(90)\n"
            "await runtime.say('I made a square!')\n"
        ),
    ),
]


def get_sample(title: str) -> SampleProgram:
    for sample in SAMPLE_PROGRAMS:
        if sample.title == title:
            return sample
    raise KeyError(f"Unknown sample program '{title}'.")
