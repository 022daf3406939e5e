import json
import threading
import urllib.error
import urllib.request

import pytest

from myblock.executor import ProgramExecutor
from myblock.headless_http import create_server
from myblock.playground import Playground
from myblock.sprite_model import StageConfig


def _raw_get(url: str) -> str:
    with urllib.request.urlopen(url, timeout=5) as response:
        return response.read().decode("utf-8")


def _http_get_json(url: str) -> dict:
    return json.loads(_raw_get(url))


def _http_post_raw(url: str, data: bytes) -> dict:
    request = urllib.request.Request(
        url,
        data=data,
        method="POST",
        headers={"Content-Type": "application/json", "Accept": "application/json"},
    )
    with urllib.request.urlopen(request, timeout=5) as response:
        return json.loads(response.read().decode("utf-8"))


def _http_post_json(url: str, payload: dict) -> dict:
    return _http_post_raw(url, json.dumps(payload).encode("utf-8"))


@pytest.fixture
def base_url():
    playground = Playground(ProgramExecutor(StageConfig(wait_scale=0)))
    server = create_server(playground, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=3)


def test_state_endpoint_reports_initial_slot(base_url):
    payload = _http_get_json(f"{base_url}/state")
    assert payload["state"] == {
        "x": 0.0,
        "y": 0.0,
        "direction": 90.0,
        "speech": None,
        "trail": [{"x": 0.0, "y": 0.0}],
    }
    assert payload["output"] == "Ready to run your program."
    assert payload["running"] is False


def test_run_endpoint_executes_source_and_updates_state(base_url):
    result = _http_post_json(f"{base_url}/run", {})
    assert result["status"] == "completed"
    assert result["snapshot"]["speech"] == "Hello, MyBlock!"
    assert result["log"].endswith("x: 100.0, y: 0.0, direction: 180°")

    state = _http_get_json(f"{base_url}/state")
    assert state["state"]["direction"] == 180
    assert state["output"] == result["output"]


def test_run_endpoint_accepts_instruction_lists(base_url):
    result = _http_post_json(
        f"{base_url}/run",
        {
            "instructions": [
                {"op": "repeat", "times": 4, "body": [{"op": "move", "steps": 12}, {"op": "turn", "degrees": 90}]}
            ]
        },
    )
    assert result["status"] == "completed"
    assert len(result["snapshot"]["trail"]) == 5


def test_failed_run_returns_error_only(base_url):
    result = _http_post_json(
        f"{base_url}/run",
        {"source": "await runtime.move(10)\nraise RuntimeError('bad')"},
    )
    assert result["status"] == "failed"
    assert result["snapshot"] is None
    assert result["output"] == "Error: bad"

    state = _http_get_json(f"{base_url}/state")
    assert state["state"]["x"] == 0.0
    assert state["output"] == "Error: bad"


def test_malformed_bodies_return_400(base_url):
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        _http_post_raw(f"{base_url}/run", b"{not json")
    assert excinfo.value.code == 400

    with pytest.raises(urllib.error.HTTPError) as excinfo:
        _http_post_json(f"{base_url}/run", {"instructions": [{"op": "jump"}]})
    assert excinfo.value.code == 400


def test_samples_and_tools_are_listed(base_url):
    samples = _http_get_json(f"{base_url}/samples")["samples"]
    assert [sample["title"] for sample in samples] == ["Star Greeting", "Square Walk"]

    tools = _http_get_json(f"{base_url}/tools")["tools"]
    assert {tool["name"] for tool in tools} == {
        "run_program",
        "reset_stage",
        "load_sample",
        "get_state",
    }


def test_tool_calls_drive_the_playground(base_url):
    loaded = _http_post_json(
        f"{base_url}/tools/call",
        {"name": "load_sample", "arguments": {"title": "Square Walk"}},
    )
    assert loaded["output"] == "Loaded sample: Square Walk"

    result = _http_post_json(f"{base_url}/tools/call", {"name": "run_program", "arguments": {}})
    assert result["snapshot"]["speech"] == "I made a square!"

    reset = _http_post_json(f"{base_url}/reset", {})
    assert reset["output"] == "Workspace reset to starter project."
    assert reset["state"]["trail"] == [{"x": 0.0, "y": 0.0}]


def test_unknown_tool_and_sample_return_404(base_url):
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        _http_post_json(f"{base_url}/tools/call", {"name": "explode"})
    assert excinfo.value.code == 404

    with pytest.raises(urllib.error.HTTPError) as excinfo:
        _http_post_json(
            f"{base_url}/tools/call",
            {"name": "load_sample", "arguments": {"title": "Nope"}},
        )
    assert excinfo.value.code == 404

    with pytest.raises(urllib.error.HTTPError) as excinfo:
        _http_get_json(f"{base_url}/missing")
    assert excinfo.value.code == 404


def test_non_finite_state_is_served_as_strict_json(base_url):
    request = urllib.request.Request(
        f"{base_url}/run",
        data=json.dumps({"source": "await runtime.turn(float('inf'))"}).encode("utf-8"),
        method="POST",
        headers={"Content-Type": "application/json"},
    )
    with urllib.request.urlopen(request, timeout=5) as response:
        raw = response.read().decode("utf-8")

    def reject(token):
        raise ValueError(f"non-standard JSON token {token}")

    result = json.loads(raw, parse_constant=reject)
    assert result["snapshot"]["direction"] == "NaN"

    state = json.loads(_raw_get(f"{base_url}/state"), parse_constant=reject)
    assert state["state"]["direction"] == "NaN"
