"""Entry point for the standalone catalog backend."""

import uvicorn

from zipfinder.config import settings
from zipfinder.main import app


def main() -> None:
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
