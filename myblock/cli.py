#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from myblock.errors import ProgramValidationError
from myblock.executor import ProgramExecutor
from myblock.exporter import dumps, export_run, result_to_dict
from myblock.headless_http import DEFAULT_HOST, DEFAULT_PORT, serve
from myblock.mcp_bridge import build_fastmcp_from_http
from myblock.playground import Playground
from myblock.samples import SAMPLE_PROGRAMS
from myblock.sprite_model import DEFAULT_STAGE_CONFIG, WAIT_SCALE, StageConfig


def _stage_config(wait_scale: float) -> StageConfig:
    return replace(DEFAULT_STAGE_CONFIG, wait_scale=wait_scale)


def _read_program(path: str) -> str:
    program_path = Path(path)
    if not program_path.is_file():
        raise FileNotFoundError(f"Program file not found: {program_path}")
    return program_path.read_text(encoding="utf-8")


def _cmd_run(args: argparse.Namespace) -> int:
    source = _read_program(args.program)
    config = _stage_config(args.wait_scale)

    if args.export:
        try:
            result = export_run(source, args.export, config=config)
        except ProgramValidationError as exc:
            print(f"Error: {exc}")
            return 1
        print(f"Exported run trace to: {Path(args.export).resolve()}")
    else:
        result = asyncio.run(ProgramExecutor(config).run(source))

    if args.json:
        print(dumps(result_to_dict(result), indent=2, ensure_ascii=False))
    else:
        print(result.output)
    return 0 if result.ok else 1


def _cmd_samples(args: argparse.Namespace) -> int:
    for sample in SAMPLE_PROGRAMS:
        print(f"{sample.title}: {sample.description}")
        if args.verbose:
            for line in sample.source.splitlines():
                print(f"    {line}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    playground = Playground(ProgramExecutor(_stage_config(args.wait_scale)))
    print(f"Serving MyBlock playground on http://{args.host}:{args.port}")
    serve(playground, args.host, args.port)
    return 0


def _cmd_mcp(args: argparse.Namespace) -> int:
    mcp = build_fastmcp_from_http(args.url, server_name=args.name)
    mcp.run()
    return 0


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="myblock",
        description=(
            "Run MyBlock sprite programs headlessly, serve a playground over HTTP, "
            "or proxy a running playground as MCP tools."
        ),
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity for runtime events.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Execute a program file once.")
    run_parser.add_argument(
        "program",
        help="Path to program text calling runtime.move/turn/say/wait.",
    )
    run_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full run result (snapshot, trail, log) as JSON.",
    )
    run_parser.add_argument(
        "--wait-scale",
        type=float,
        default=WAIT_SCALE,
        help="Real seconds of suspension per requested wait second (0 disables waiting).",
    )
    run_parser.add_argument(
        "--export",
        default=None,
        help="Directory where program_ir.json, program.py and run_result.json are written.",
    )
    run_parser.set_defaults(handler=_cmd_run)

    samples_parser = subparsers.add_parser("samples", help="List sample programs.")
    samples_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Also print each sample's program text.",
    )
    samples_parser.set_defaults(handler=_cmd_samples)

    serve_parser = subparsers.add_parser("serve", help="Serve a headless playground.")
    serve_parser.add_argument("--host", default=DEFAULT_HOST)
    serve_parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    serve_parser.add_argument("--wait-scale", type=float, default=WAIT_SCALE)
    serve_parser.set_defaults(handler=_cmd_serve)

    mcp_parser = subparsers.add_parser(
        "mcp", help="Expose a running playground server as FastMCP tools."
    )
    mcp_parser.add_argument("url", help="Base URL of the playground server.")
    mcp_parser.add_argument("--name", default="MyBlock Studio")
    mcp_parser.set_defaults(handler=_cmd_mcp)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
