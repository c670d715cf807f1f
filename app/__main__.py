import uvicorn

from app import config


def run() -> None:
    # Uvicorn translates SIGTERM/SIGINT into the lifespan shutdown that closes Chromium.
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=config.PORT,
        timeout_graceful_shutdown=int(config.SHUTDOWN_GRACE_S),
    )


if __name__ == "__main__":
    run()
