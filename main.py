"""ASGI entrypoint for running the dsl.sk statistics API with Uvicorn."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the src directory is on the Python path so the dslcrawler package can be imported
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from dslcrawler.api.app import app  # noqa: E402  (import after path setup)

__all__ = ("app",)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("DSLCRAWLER_HOST", "127.0.0.1"),
        port=int(os.environ.get("DSLCRAWLER_PORT", "8000")),
    )
