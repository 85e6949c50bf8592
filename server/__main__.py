"""CLI entrypoint for running the API server."""
from __future__ import annotations

import argparse
import os

from config import SERVER_PORT

from . import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the generation API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help=f"Port to bind (default: {SERVER_PORT})")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    args = parser.parse_args()

    app = create_app()
    mode = app.extensions["genstudio"]["service"].mode.value

    if not args.debug or os.environ.get("WERKZEUG_RUN_MAIN") == "true":
        print(f"Server running at http://{args.host}:{args.port} ({mode} mode)", flush=True)

    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)


if __name__ == "__main__":  # pragma: no cover
    main()
