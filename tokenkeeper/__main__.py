"""Run the API with uvicorn: ``python -m tokenkeeper``."""

from __future__ import annotations

import logging
import os

import uvicorn

from .core.config import LOG_LEVEL, RELOAD


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(
        "tokenkeeper.app:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3000")),
        reload=RELOAD,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
