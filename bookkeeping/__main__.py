"""Run the service with uvicorn: python -m bookkeeping"""

import uvicorn

from bookkeeping.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "bookkeeping.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    main()
