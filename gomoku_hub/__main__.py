import uvicorn

from gomoku_hub.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "gomoku_hub.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
