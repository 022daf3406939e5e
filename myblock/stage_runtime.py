"""Stage runtime: the single-sprite state machine driven by program operations."""

from __future__ import annotations

import asyncio
import math
from typing import Any, Awaitable, Callable, List, Optional

from myblock.sprite_model import (
    DEFAULT_STAGE_CONFIG,
    Point,
    SpriteState,
    StageConfig,
    fresh_sprite_state,
)

SleepFn = Callable[[float], Awaitable[Any]]


def format_number(value: Any) -> str:
    """Render a program value the way log lines show it.

    Integral floats drop their fractional part so ``move(10.0)`` logs as
    ``Move 10 steps``. Non-numeric values are rendered with ``str``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def format_fixed(value: float, digits: int) -> str:
    """``f"{value:.{digits}f}"`` that spells non-finite values like log lines do."""
    if math.isnan(value) or math.isinf(value):
        return format_number(float(value))
    # Adding 0.0 folds negative zero so it prints as "0.0".
    return f"{value + 0.0:.{digits}f}"


def as_number(value: Any) -> Any:
    """Widen integers to float, saturating to +/-inf past the float range.

    Non-integers are returned untouched so type errors surface at the
    arithmetic that needs a number.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    return value


def _clamp(value: float, low: float, high: float) -> float:
    # Argument order keeps NaN flowing through instead of snapping to a bound.
    return min(max(value, low), high)


class StageRuntime:
    """Owns one sprite and its execution log for the duration of a run.

    ``move``, ``turn`` and ``say`` never suspend. ``wait`` suspends for
    ``seconds * config.wait_scale`` real seconds through ``sleep``.
    """

    def __init__(
        self,
        config: StageConfig = DEFAULT_STAGE_CONFIG,
        *,
        sleep: Optional[SleepFn] = None,
    ):
        self.config = config
        self._sleep: SleepFn = sleep if sleep is not None else asyncio.sleep
        self._state = fresh_sprite_state()
        self._logs: List[str] = []

    def snapshot(self) -> SpriteState:
        return self._state.copy()

    def _commit_position(self, x: float, y: float) -> None:
        clamped_x = _clamp(x, -self.config.half_width, self.config.half_width)
        clamped_y = _clamp(y, -self.config.half_height, self.config.half_height)
        self._state.x = clamped_x
        self._state.y = clamped_y
        self._state.trail.append(Point(clamped_x, clamped_y))

    async def move(self, steps: Any) -> None:
        steps = as_number(steps)
        distance = steps * self.config.step_scale
        radians = (self._state.direction - 90) * math.pi / 180
        next_x = self._state.x + math.cos(radians) * distance
        next_y = self._state.y + math.sin(radians) * distance
        self._commit_position(next_x, next_y)
        self._logs.append(f"Move {format_number(steps)} steps")

    async def turn(self, degrees: Any) -> None:
        degrees = as_number(degrees)
        next_direction = (self._state.direction + degrees) % 360
        if next_direction < 0:
            next_direction += 360
        # Float modulo of a tiny negative can round up to exactly 360.
        if next_direction >= 360:
            next_direction -= 360
        self._state.direction = next_direction
        side = "right" if degrees > 0 else "left"
        self._logs.append(f"Turn {side} {format_number(abs(degrees))}°")

    async def say(self, message: Any) -> None:
        self._state.speech = message
        self._logs.append(f"Say: {format_number(message)}")

    async def wait(self, seconds: Any) -> None:
        duration = max(as_number(seconds), 0)
        self._logs.append(f"Wait {format_fixed(duration, 1)} second(s)")
        if duration == 0:
            return
        delay = duration * self.config.wait_scale
        if not delay > 0:
            return
        await self._sleep(delay)

    def report(self) -> str:
        x = format_fixed(self._state.x, 1)
        y = format_fixed(self._state.y, 1)
        direction = format_fixed(self._state.direction, 0)
        return f"x: {x}, y: {y}, direction: {direction}°"

    def log_lines(self) -> List[str]:
        return list(self._logs)

    def log_text(self) -> str:
        return "\n".join(self._logs)
