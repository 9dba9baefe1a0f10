import uvicorn

from shortener.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "shortener.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
