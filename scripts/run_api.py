"""Start the ArmBlocks API on port 8000.

Usage:
    python scripts/run_api.py
    python scripts/run_api.py --port 9000 --reload
"""

import argparse
import logging

import uvicorn


def main() -> None:
    """Launch the FastAPI app with uvicorn."""
    parser = argparse.ArgumentParser(description="ArmBlocks API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
    )
    uvicorn.run("armblocks.api.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
