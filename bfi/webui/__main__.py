from __future__ import annotations

import argparse
from typing import Optional

import uvicorn

from .app import create_app
from .registry import DebuggerRegistry


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m bfi.webui", description="Serve the bfi HTTP API")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to listen on (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument(
        "--max-debuggers",
        type=int,
        default=64,
        help="Live debuggers kept before the least recently used is dropped",
    )
    parser.add_argument("--log-level", default="info", help="uvicorn log level")
    args = parser.parse_args(argv)

    app = create_app(DebuggerRegistry(capacity=args.max_debuggers))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
