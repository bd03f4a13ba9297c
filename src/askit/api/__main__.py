"""Run the askit API with uvicorn."""

from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "askit.api.app:create_app",
        factory=True,
        host=os.getenv("ASKIT_HOST", "0.0.0.0"),
        port=int(os.getenv("ASKIT_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
