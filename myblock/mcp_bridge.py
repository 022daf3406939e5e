"""HTTP client and FastMCP proxy for a running headless playground server."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


class PlaygroundRequestError(RuntimeError):
    """The playground server answered with a non-2xx status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


class MyBlockHTTPClient:
    """JSON client for the endpoints served by :mod:`myblock.headless_http`."""

    def __init__(self, base_url: str, *, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def list_tools(self) -> List[Dict[str, Any]]:
        tools = self._request("GET", "/tools").get("tools")
        if not isinstance(tools, list):
            return []
        return [tool for tool in tools if isinstance(tool, dict)]

    def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Invoke one playground tool by name through ``POST /tools/call``.

        Raises:
            ValueError: If ``name`` is empty.
            PlaygroundRequestError: If the server rejects the call (unknown
                tool or sample, busy playground, malformed program).
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Tool name must be a non-empty string.")
        return self._request(
            "POST", "/tools/call", {"name": name, "arguments": arguments or {}}
        )

    def get_state(self) -> Dict[str, Any]:
        """Fetch the sprite slot, output text and current source."""
        return self._request("GET", "/state")

    def list_samples(self) -> List[Dict[str, Any]]:
        samples = self._request("GET", "/samples").get("samples")
        return samples if isinstance(samples, list) else []

    def run_program(
        self,
        source: Optional[str] = None,
        *,
        instructions: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Run program text or a tagged instruction list via ``POST /run``.

        Without arguments the playground's current source is run.
        """
        payload: Dict[str, Any] = {}
        if source is not None:
            payload["source"] = source
        if instructions is not None:
            payload["instructions"] = instructions
        return self._request("POST", "/run", payload)

    def load_sample(self, title: str) -> Dict[str, Any]:
        return self.call_tool("load_sample", {"title": title})

    def reset(self) -> Dict[str, Any]:
        return self._request("POST", "/reset", {})

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {"Accept": "application/json"}
        body: Optional[bytes] = None
        if payload is not None:
            headers["Content-Type"] = "application/json"
            body = json.dumps(payload).encode("utf-8")

        request = urllib.request.Request(
            f"{self.base_url}{path}", data=body, method=method, headers=headers
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                decoded = _decode_object(response.read())
        except urllib.error.HTTPError as exc:
            error = _decode_object(exc.read()).get("error") or exc.reason
            raise PlaygroundRequestError(exc.code, str(error)) from exc
        return decoded


def _decode_object(raw: bytes) -> Dict[str, Any]:
    text = raw.decode("utf-8")
    if not text.strip():
        return {}
    parsed = json.loads(text)
    return parsed if isinstance(parsed, dict) else {}


def _playground_tools(client: MyBlockHTTPClient) -> Dict[str, Callable[..., Dict[str, Any]]]:
    def run_program(
        source: Optional[str] = None,
        instructions: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Run program text or a tagged instruction list on a fresh stage."""
        return client.run_program(source, instructions=instructions)

    def reset_stage() -> Dict[str, Any]:
        """Abandon any in-flight run and restore the starter project."""
        return client.reset()

    def load_sample(title: str) -> Dict[str, Any]:
        """Load a sample program into the playground by title."""
        return client.load_sample(title)

    def get_state() -> Dict[str, Any]:
        """Return the current sprite snapshot and output text."""
        return client.get_state()

    return {
        "run_program": run_program,
        "reset_stage": reset_stage,
        "load_sample": load_sample,
        "get_state": get_state,
    }


def build_fastmcp_from_http(
    base_url: str,
    *,
    server_name: str = "MyBlock Studio",
    mcp_cls: Optional[Type[Any]] = None,
) -> Any:
    """Create a FastMCP server whose tools drive a playground over HTTP.

    Only tools the server advertises on ``GET /tools`` are registered; each
    keeps the server's description. ``mcp_cls`` replaces ``fastmcp.FastMCP``
    (tests pass a fake).

    Raises:
        RuntimeError: If ``fastmcp`` is not installed and no ``mcp_cls`` is given.
    """
    if mcp_cls is None:
        try:
            from fastmcp import FastMCP  # type: ignore
        except ImportError as exc:  # pragma: no cover - depends on optional dependency
            raise RuntimeError(
                "fastmcp is not installed. Install myblock-studio[mcp] or pass mcp_cls explicitly."
            ) from exc
        mcp_cls = FastMCP

    client = MyBlockHTTPClient(base_url)
    advertised = {
        tool["name"]: tool.get("tool_docstring") or ""
        for tool in client.list_tools()
        if isinstance(tool.get("name"), str)
    }

    mcp = mcp_cls(server_name)
    for name, fn in _playground_tools(client).items():
        if name not in advertised:
            logger.debug("Server at %s does not advertise tool %s", base_url, name)
            continue
        mcp.tool(name=name, description=advertised[name] or fn.__doc__)(fn)
    return mcp
