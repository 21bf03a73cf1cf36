#!/usr/bin/env python3
"""
Server startup wrapper.

    python -m recipe_server.start_server [--host 0.0.0.0] [--port 8000]
"""
import argparse
import os
import sys

import uvicorn

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the recipe server")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    args = parser.parse_args(argv)

    print(f"[recipe_server] REST: http://{args.host}:{args.port}/v1/recipes")
    print(f"[recipe_server] MCP:  http://{args.host}:{args.port}/mcp")
    try:
        uvicorn.run(
            "recipe_server.main:app",
            host=args.host,
            port=args.port,
            reload=False,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[recipe_server] Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
