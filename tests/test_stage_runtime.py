import asyncio
import math

import pytest

from myblock.sprite_model import Point, StageConfig
from myblock.stage_runtime import StageRuntime, format_fixed, format_number


class _RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _runtime(**kwargs):
    return StageRuntime(sleep=_RecordingSleep(), **kwargs)


def test_fresh_runtime_starts_at_origin_facing_ninety():
    state = _runtime().snapshot()
    assert (state.x, state.y, state.direction) == (0.0, 0.0, 90.0)
    assert state.speech is None
    assert state.trail == [Point(0.0, 0.0)]


def test_move_scales_steps_along_heading():
    runtime = _runtime()
    asyncio.run(runtime.move(10))
    state = runtime.snapshot()
    assert state.x == pytest.approx(100.0)
    assert state.y == pytest.approx(0.0)
    assert len(state.trail) == 2
    assert runtime.log_lines() == ["Move 10 steps"]


def test_move_after_turning_to_zero_heads_negative_y():
    runtime = _runtime()

    async def program():
        await runtime.turn(-90)
        await runtime.move(3)

    asyncio.run(program())
    state = runtime.snapshot()
    assert state.direction == 0
    assert state.x == pytest.approx(0.0, abs=1e-9)
    assert state.y == pytest.approx(-30.0)


def test_move_clamps_to_stage_edge_and_still_appends_trail():
    runtime = _runtime()

    async def program():
        for _ in range(3):
            await runtime.move(100)

    asyncio.run(program())
    state = runtime.snapshot()
    assert state.x == 160.0
    assert state.trail[1:] == [Point(160.0, 0.0)] * 3
    assert runtime.log_lines() == ["Move 100 steps"] * 3


def test_clamp_uses_configured_stage_size():
    runtime = _runtime(config=StageConfig(width=100, height=40))

    async def program():
        await runtime.move(-50)
        await runtime.turn(90)
        await runtime.move(-50)

    asyncio.run(program())
    state = runtime.snapshot()
    assert state.x == -50.0
    assert state.y == -20.0


def test_trail_grows_by_one_per_move():
    runtime = _runtime()

    async def program():
        for steps in (1, -4, 0, 250, 3.5):
            await runtime.move(steps)
            await runtime.turn(37)

    asyncio.run(program())
    assert len(runtime.snapshot().trail) == 6


def test_turn_normalizes_direction():
    runtime = _runtime()
    asyncio.run(runtime.turn(300))
    assert runtime.snapshot().direction == 30

    runtime = _runtime()
    asyncio.run(runtime.turn(-400))
    assert runtime.snapshot().direction == 50


def test_turn_direction_stays_in_range_for_any_sequence():
    runtime = _runtime()
    turns = [-90, -1e-20, 359.5, -720, 1e-20, 45.25, -3600.75, 361]

    async def program():
        for degrees in turns:
            await runtime.turn(degrees)
            direction = runtime.snapshot().direction
            assert 0 <= direction < 360

    asyncio.run(program())


def test_turn_log_reports_side_and_magnitude():
    runtime = _runtime()

    async def program():
        await runtime.turn(90)
        await runtime.turn(-45)
        await runtime.turn(0)
        await runtime.turn(12.5)

    asyncio.run(program())
    assert runtime.log_lines() == [
        "Turn right 90°",
        "Turn left 45°",
        "Turn left 0°",
        "Turn right 12.5°",
    ]


def test_say_replaces_speech_and_empty_message_is_kept():
    runtime = _runtime()

    async def program():
        await runtime.say("Hi")
        await runtime.say("")

    asyncio.run(program())
    assert runtime.snapshot().speech == ""
    assert runtime.log_lines() == ["Say: Hi", "Say: "]


def test_wait_suspends_for_scaled_duration():
    sleep = _RecordingSleep()
    runtime = StageRuntime(sleep=sleep)
    asyncio.run(runtime.wait(2))
    assert sleep.delays == [0.5]
    assert runtime.log_lines() == ["Wait 2.0 second(s)"]


def test_wait_zero_and_negative_do_not_suspend():
    sleep = _RecordingSleep()
    runtime = StageRuntime(sleep=sleep)

    async def program():
        await runtime.wait(0)
        await runtime.wait(-5)

    asyncio.run(program())
    assert sleep.delays == []
    assert runtime.log_lines() == ["Wait 0.0 second(s)", "Wait 0.0 second(s)"]


def test_wait_uses_asyncio_sleep_by_default():
    runtime = StageRuntime(StageConfig(wait_scale=0.01))
    asyncio.run(runtime.wait(1))
    assert runtime.log_lines() == ["Wait 1.0 second(s)"]


def test_snapshot_is_independent_of_runtime_state():
    runtime = _runtime()
    asyncio.run(runtime.move(1))
    snapshot = runtime.snapshot()
    snapshot.trail.append(Point(5.0, 5.0))
    snapshot.x = 99.0

    state = runtime.snapshot()
    assert len(state.trail) == 2
    assert state.x == pytest.approx(10.0)


def test_report_formats_position_and_direction():
    runtime = _runtime()

    async def program():
        await runtime.move(1.234)
        await runtime.turn(90)

    asyncio.run(program())
    assert runtime.report() == "x: 12.3, y: 0.0, direction: 180°"


def test_nan_steps_propagate_into_state():
    runtime = _runtime()
    asyncio.run(runtime.move(float("nan")))
    state = runtime.snapshot()
    assert math.isnan(state.x)
    assert math.isnan(state.y)
    assert len(state.trail) == 2
    assert runtime.log_lines() == ["Move NaN steps"]


def test_non_numeric_steps_raise_host_type_error():
    runtime = _runtime()
    with pytest.raises(TypeError):
        asyncio.run(runtime.move("far"))


def test_log_text_joins_lines_in_call_order():
    runtime = _runtime()

    async def program():
        await runtime.say("a")
        await runtime.wait(1)
        await runtime.move(2)

    asyncio.run(program())
    assert runtime.log_text() == "Say: a\nWait 1.0 second(s)\nMove 2 steps"


def test_format_number_drops_integral_fraction():
    assert format_number(10) == "10"
    assert format_number(10.0) == "10"
    assert format_number(2.5) == "2.5"
    assert format_number(float("inf")) == "Infinity"
    assert format_number(float("-inf")) == "-Infinity"
    assert format_number("text") == "text"


def test_integers_beyond_float_range_saturate_to_infinity():
    sleep = _RecordingSleep()
    runtime = StageRuntime(sleep=sleep)

    async def program():
        await runtime.move(10 ** 400)
        await runtime.wait(10 ** 400)
        await runtime.turn(-(10 ** 400))

    asyncio.run(program())
    state = runtime.snapshot()
    assert state.x == 160.0
    assert math.isnan(state.y)
    assert math.isnan(state.direction)
    assert sleep.delays == [math.inf]
    assert runtime.log_lines() == [
        "Move Infinity steps",
        "Wait Infinity second(s)",
        "Turn left Infinity°",
    ]


def test_non_finite_values_render_the_same_in_log_and_report():
    runtime = _runtime()

    async def program():
        await runtime.wait(float("nan"))
        await runtime.move(float("nan"))

    asyncio.run(program())
    assert runtime.log_lines() == ["Wait NaN second(s)", "Move NaN steps"]
    assert runtime.report() == "x: NaN, y: NaN, direction: 90°"


def test_format_fixed_matches_fixed_point_rendering():
    assert format_fixed(12.345, 1) == "12.3"
    assert format_fixed(-0.0, 1) == "0.0"
    assert format_fixed(float("nan"), 0) == "NaN"
    assert format_fixed(float("-inf"), 1) == "-Infinity"
