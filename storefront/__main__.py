"""Run the orders API with uvicorn: ``python -m storefront``."""

import uvicorn

from . import settings


def main() -> None:
    uvicorn.run(
        "storefront.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.UVICORN_WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
