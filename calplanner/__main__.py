"""
Run the planner backend under uvicorn.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from calplanner.config import get_settings


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Cal Planner backend server")
    parser.add_argument("--host", type=str, default=settings.host, help="Bind address")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Listen port (defaults to $PORT, then 8080)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run("calplanner.app:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
