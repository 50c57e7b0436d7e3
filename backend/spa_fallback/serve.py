"""Run the SPA server with uvicorn."""

import logging
import sys

import uvicorn

from spa_fallback.config import settings


def main():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    uvicorn.run(
        "spa_fallback.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.SPA_DEVELOPMENT,
    )


if __name__ == "__main__":
    main()
