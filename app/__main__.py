from __future__ import annotations

import uvicorn

# Importing app.main configures logging before anything below logs
from app.main import app, logger, settings


def main() -> None:
    logger.info("Server listening on port: %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
