import uvicorn

from hub_api.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "hub_api.main:create_app",
        factory=True,
        host=settings.ip,
        port=settings.port,
        workers=settings.workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
