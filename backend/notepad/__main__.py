"""Run the API server: `python -m notepad`."""

import uvicorn

from notepad.config import settings


def main() -> None:
    uvicorn.run(
        "notepad.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
