from dataclasses import dataclass, field
from typing import List, Optional

STAGE_WIDTH = 320
STAGE_HEIGHT = 320
STEP_SCALE = 10
WAIT_SCALE = 0.25
INITIAL_DIRECTION = 90.0


@dataclass(frozen=True)
class StageConfig:
    """Stage geometry and timing constants.

    ``step_scale`` converts program steps into stage units and
    ``wait_scale`` converts requested seconds into real seconds of suspension.
    """

    width: float = STAGE_WIDTH
    height: float = STAGE_HEIGHT
    step_scale: float = STEP_SCALE
    wait_scale: float = WAIT_SCALE

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_height(self) -> float:
        return self.height / 2


DEFAULT_STAGE_CONFIG = StageConfig()


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass
class SpriteState:
    x: float = 0.0
    y: float = 0.0
    direction: float = INITIAL_DIRECTION
    speech: Optional[str] = None
    trail: List[Point] = field(default_factory=lambda: [Point(0.0, 0.0)])

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def copy(self) -> "SpriteState":
        # Points are frozen, so a new list is enough to detach the trail.
        return SpriteState(
            x=self.x,
            y=self.y,
            direction=self.direction,
            speech=self.speech,
            trail=list(self.trail),
        )


def fresh_sprite_state() -> SpriteState:
    return SpriteState()
