import logging
import os

from crafture.config import Settings
from crafture.server.app import create_app


def main():
    """Run the API with uvicorn on HOST:PORT (default 0.0.0.0:3001)"""
    import uvicorn

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger = logging.getLogger("server")

    settings = Settings.from_env()
    app = create_app(settings=settings)
    logger.info(f"AI Image Generation API running on port {settings.port}")
    logger.info(f"Health check: http://localhost:{settings.port}/api/health")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
