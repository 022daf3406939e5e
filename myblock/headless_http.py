"""JSON HTTP server exposing one :class:`Playground` to headless clients."""

from __future__ import annotations

import asyncio
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple, Type

from myblock.errors import PlaygroundBusyError, ProgramValidationError
from myblock.exporter import dumps, instructions_from_dict, result_to_dict, snapshot_to_dict
from myblock.executor import Program
from myblock.playground import Playground
from myblock.samples import SAMPLE_PROGRAMS

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7070

TOOLS = [
    {
        "name": "run_program",
        "tool_docstring": (
            "Run a program against a fresh stage. Pass 'source' (program text "
            "calling runtime.move/turn/say/wait) or 'instructions' (tagged JSON list)."
        ),
    },
    {
        "name": "reset_stage",
        "tool_docstring": "Abandon any in-flight run and restore the starter project.",
    },
    {
        "name": "load_sample",
        "tool_docstring": "Load a sample program by 'title' into the playground.",
    },
    {
        "name": "get_state",
        "tool_docstring": "Return the current sprite snapshot and output text.",
    },
]

Response = Tuple[int, Dict[str, Any]]


def state_payload(playground: Playground) -> Dict[str, Any]:
    return {
        "state": snapshot_to_dict(playground.sprite),
        "output": playground.output,
        "source": playground.source,
        "running": playground.is_running,
    }


def _program_from_arguments(arguments: Dict[str, Any]) -> Optional[Program]:
    if "instructions" in arguments:
        return instructions_from_dict(arguments["instructions"])
    source = arguments.get("source")
    if source is None:
        return None
    if not isinstance(source, str):
        raise ProgramValidationError("'source' must be a string.")
    return source


def run_program(playground: Playground, arguments: Dict[str, Any]) -> Response:
    try:
        program = _program_from_arguments(arguments)
    except ProgramValidationError as exc:
        return 400, {"error": str(exc)}
    try:
        result = asyncio.run(playground.run(program))
    except PlaygroundBusyError as exc:
        return 409, {"error": str(exc)}
    return 200, result_to_dict(result)


def call_tool(playground: Playground, name: Any, arguments: Any) -> Response:
    if not isinstance(arguments, dict):
        return 400, {"error": "Tool arguments must be a JSON object."}
    if name == "run_program":
        return run_program(playground, arguments)
    if name == "reset_stage":
        playground.reset()
        return 200, state_payload(playground)
    if name == "load_sample":
        try:
            playground.load_sample(str(arguments.get("title", "")))
        except KeyError as exc:
            return 404, {"error": exc.args[0]}
        except PlaygroundBusyError as exc:
            return 409, {"error": str(exc)}
        return 200, state_payload(playground)
    if name == "get_state":
        return 200, state_payload(playground)
    return 404, {"error": f"Unknown tool '{name}'."}


class PlaygroundRequestHandler(BaseHTTPRequestHandler):
    playground: Playground

    def do_GET(self):  # noqa: N802
        if self.path == "/state":
            self._send_json(state_payload(self.playground))
            return
        if self.path == "/samples":
            self._send_json(
                {
                    "samples": [
                        {
                            "title": sample.title,
                            "description": sample.description,
                            "source": sample.source,
                        }
                        for sample in SAMPLE_PROGRAMS
                    ]
                }
            )
            return
        if self.path == "/tools":
            self._send_json({"tools": TOOLS})
            return
        self._send_json({"error": "not found"}, status=404)

    def do_POST(self):  # noqa: N802
        try:
            payload = self._read_json()
        except ValueError as exc:
            self._send_json({"error": f"Invalid JSON body: {exc}"}, status=400)
            return

        if self.path == "/run":
            status, body = run_program(self.playground, payload)
        elif self.path == "/reset":
            self.playground.reset()
            status, body = 200, state_payload(self.playground)
        elif self.path == "/tools/call":
            status, body = call_tool(
                self.playground, payload.get("name"), payload.get("arguments") or {}
            )
        else:
            status, body = 404, {"error": "not found"}
        self._send_json(body, status=status)

    def log_message(self, format, *args):  # noqa: A003
        logger.debug("%s - %s", self.address_string(), format % args)

    def _read_json(self) -> Dict[str, Any]:
        raw = self.rfile.read(int(self.headers.get("Content-Length", "0")))
        if not raw:
            return {}
        payload = json.loads(raw.decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        return payload

    def _send_json(self, payload: Dict[str, Any], status: int = 200) -> None:
        encoded = dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)


def create_server(
    playground: Optional[Playground] = None,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> ThreadingHTTPServer:
    """Create (but do not start) an HTTP server bound to ``host:port``.

    Pass ``port=0`` to let the OS pick a free port; read it back from
    ``server.server_address``.
    """
    handler: Type[PlaygroundRequestHandler] = type(
        "BoundPlaygroundRequestHandler",
        (PlaygroundRequestHandler,),
        {"playground": playground or Playground()},
    )
    return ThreadingHTTPServer((host, port), handler)


def serve(
    playground: Optional[Playground] = None,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    server = create_server(playground, host, port)
    bound_host, bound_port = server.server_address[:2]
    logger.info("Serving playground on http://%s:%s", bound_host, bound_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down playground server")
    finally:
        server.server_close()
