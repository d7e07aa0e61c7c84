import os

from reviewbot.logger import get_logger

logger = get_logger()


def main() -> None:
    host = "0.0.0.0"
    port = int(os.getenv("PORT", "3000"))
    display_url = f"http://localhost:{port}"

    logger.info(
        "Starting ReviewBot review API on {display_url} (binding to {host}:{port})",
        display_url=display_url,
        host=host,
        port=port,
    )

    import uvicorn

    uvicorn.run(
        app="reviewbot.server.app:app",
        host=host,
        port=port,
        reload=True,
        workers=1,
        log_level="debug",
    )


if __name__ == "__main__":
    main()
