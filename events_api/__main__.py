"""Run the API server: ``python -m events_api``."""

import uvicorn

from events_api.core.config import settings


def main() -> None:
    uvicorn.run(
        "events_api.main:app",
        host="0.0.0.0",
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
