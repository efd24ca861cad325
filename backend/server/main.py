"""
Development server entry point.

    live-console        (console script, after `pip install -e .`)

Runs the ASGI app under uvicorn with reload enabled.
"""

from __future__ import annotations

import uvicorn


def main() -> None:
    uvicorn.run(
        "server.asgi:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
        reload=True,  # Dev mode only
    )


if __name__ == "__main__":
    main()
