#!/usr/bin/env python3
"""Start the route assignment API, honoring the PORT environment variable."""

import os
import subprocess
import sys


def _resolve_port() -> int:
    port = os.environ.get("PORT", "8000")
    try:
        return int(port)
    except ValueError:
        print(f"Warning: Invalid PORT value '{port}', using default 8000", file=sys.stderr)
        return 8000


def main() -> int:
    port = _resolve_port()
    src_path = os.path.abspath("src")
    if not os.path.isdir(src_path):
        print(f"Warning: src directory not found at {src_path}", file=sys.stderr)
        src_path = os.getcwd()

    pythonpath = os.environ.get("PYTHONPATH", "")
    os.environ["PYTHONPATH"] = f"{src_path}:{pythonpath}" if pythonpath else src_path

    if not os.environ.get("LASTMILE_MAPBOX_ACCESS_TOKEN") and not os.path.exists(".env"):
        print("Warning: LASTMILE_MAPBOX_ACCESS_TOKEN is not set; route creation will fail", file=sys.stderr)

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "lastmile.main:app",
        "--host",
        "0.0.0.0",
        "--port",
        str(port),
        "--proxy-headers",
        "--forwarded-allow-ips",
        "*",
    ]
    print(f"Starting route assignment API on port {port}...", file=sys.stderr)
    try:
        return subprocess.call(cmd)
    except KeyboardInterrupt:
        print("Server interrupted by user", file=sys.stderr)
        return 0


if __name__ == "__main__":
    sys.exit(main())
